"""Identifier sanitization for generated class and property names."""

from data_scaffolder.exceptions import CONNECTION_KEY, InvalidIdentifierError


def _is_ascii_letter(char: str) -> bool:
    return ("A" <= char <= "Z") or ("a" <= char <= "z")


def _is_ascii_digit(char: str) -> bool:
    return "0" <= char <= "9"


def sanitize_identifier(value: str, kind: str = CONNECTION_KEY) -> str:
    """
    Convert an arbitrary name into a bare identifier.

    Keeps ASCII letters and digits only. Digits are dropped until the first
    letter has been kept, so the result never starts with a digit.

    Examples:
        >>> sanitize_identifier("123Foo_Bar")
        'FooBar'
        >>> sanitize_identifier("Reporting-2")
        'Reporting2'

    Args:
        value: Name to convert
        kind: What the name is, used in the error message

    Raises:
        InvalidIdentifierError: If nothing is left after sanitizing
    """
    kept: list[str] = []
    letter_added = False
    for char in value:
        if _is_ascii_letter(char):
            kept.append(char)
            letter_added = True
        elif letter_added and _is_ascii_digit(char):
            kept.append(char)

    if not kept:
        raise InvalidIdentifierError(value, kind)
    return "".join(kept)


def sanitize_member_name(value: str) -> str:
    """
    Convert a generated member name into an identifier, keeping underscores.

    Used for record-collection names such as 'public_order-itemsRecords',
    where the schema/table separator must survive. Characters other than
    ASCII letters, digits and '_' are dropped; a leading digit gets a '_'
    prefix.

        >>> sanitize_member_name("public_order-itemsRecords")
        'public_orderitemsRecords'
    """
    kept = "".join(
        char for char in value if _is_ascii_letter(char) or _is_ascii_digit(char) or char == "_"
    )
    if kept and _is_ascii_digit(kept[0]):
        kept = "_" + kept
    return kept
