import string

# Each rule is a tuple: (predicate returning True on error, error_message).
# The rules assume `prefix` is already confirmed to be a non-empty string.
_PREFIX_VALIDATION_RULES = [
    (lambda p: any(c.isspace() for c in p), "command prefix cannot contain whitespace"),
    (lambda p: len(p) > 10, "command prefix must not exceed 10 characters"),
    (
        lambda p: not all(c in string.printable for c in p),
        "command prefix must contain only printable characters",
    ),
    (
        lambda p: p.isalnum(),
        "command prefix must contain at least one symbol",
    ),
]


def validate_command_prefix(prefix: str) -> str | None:
    """Return error message if prefix is invalid, otherwise None."""
    if not isinstance(prefix, str) or not prefix:
        return "command prefix must be a non-empty string"

    for check, message in _PREFIX_VALIDATION_RULES:
        if check(prefix):  # type: ignore[no-untyped-call]
            return message

    return None
