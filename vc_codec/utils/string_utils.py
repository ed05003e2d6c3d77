"""
String utility functions.
"""


def escape_bytes(data: bytes) -> str:
    """
    Render bytes as printable ASCII for messages.

    Args:
        data: Input bytes

    Returns:
        The bytes with non-printable values written as \\xNN escapes
    """
    result = []
    for b in data:
        if b == 0x5C:
            result.append('\\\\')
        elif b < 32 or b > 126:
            result.append(f'\\x{b:02x}')
        else:
            result.append(chr(b))
    return ''.join(result)


def sanitize_sort_title(title: str) -> str:
    """Derive a sort key from a display title (lowercase, spaces to underscores)."""
    return title.lower().replace(' ', '_')


def to_camel_case(snake_str: str) -> str:
    """
    Convert snake_case to camelCase.

    Args:
        snake_str: String in snake_case

    Returns:
        String in camelCase
    """
    components = snake_str.split('_')
    return components[0] + ''.join(x.title() for x in components[1:])


def to_snake_case(camel_str: str) -> str:
    """
    Convert camelCase or PascalCase to snake_case.

    Args:
        camel_str: String in camelCase or PascalCase

    Returns:
        String in snake_case
    """
    result = []
    for i, char in enumerate(camel_str):
        if char.isupper() and i > 0:
            result.append('_')
        result.append(char.lower())
    return ''.join(result)
