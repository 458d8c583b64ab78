"""ZION command-line chatbot core."""

__version__ = "1.0.0"
