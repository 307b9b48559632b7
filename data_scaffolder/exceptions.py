"""Custom exceptions with helpful error messages."""

from pathlib import Path


class DataScaffolderError(Exception):
    """Base exception for data-scaffolder errors."""

    pass


CONNECTION_KEY = "connection string key"
COLUMN_NAME = "column name"

_IDENTIFIER_HINTS = {
    CONNECTION_KEY: (
        "class name",
        "Rename the connection string key (e.g., 'Default', 'Reporting2')",
    ),
    COLUMN_NAME: (
        "property name",
        "Annotate the column with a property name "
        "(e.g., COMMENT ON COLUMN ... IS 'efcore:MyApp.Models=Person.Code')",
    ),
}


class InvalidIdentifierError(DataScaffolderError):
    """A name cannot be turned into a valid code identifier."""

    def __init__(self, value: str, kind: str = CONNECTION_KEY):
        self.value = value
        self.kind = kind
        target, hint = _IDENTIFIER_HINTS.get(kind, ("identifier", f"Rename the {kind}"))
        super().__init__(
            f"The {kind} '{value}' cannot be transformed into a valid {target}.\n\n"
            f"Suggestions:\n"
            f"1. Use at least one ASCII letter in the name\n"
            f"2. {hint}"
        )


class DuplicateDataSourceError(DataScaffolderError):
    """Two connection strings sanitize to the same container name."""

    def __init__(self, name: str, keys: list[str]):
        self.name = name
        self.keys = keys
        keys_str = ", ".join(f"'{k}'" for k in keys)
        super().__init__(
            f"Connection strings {keys_str} all map to the container name '{name}'.\n\n"
            f"Suggestions:\n"
            f"1. Rename one of the connection string keys\n"
            f"2. Remember that only ASCII letters and digits are kept"
        )


class DuplicateMemberError(DataScaffolderError):
    """Two generated members of one C# type would share a name."""

    def __init__(self, owner: str, member: str, names: list[str]):
        self.owner = owner
        self.member = member
        self.names = names
        names_str = ", ".join(f"'{n}'" for n in names)
        super().__init__(
            f"{names_str} all map to the member name '{member}' in '{owner}'.\n\n"
            f"Suggestions:\n"
            f"1. Annotate the column with a distinct property name\n"
            f"2. Remember that only ASCII letters and digits are kept"
        )


class LiteralFormatError(DataScaffolderError):
    """A value has no literal form in the generated code."""

    def __init__(self, value: object, declared_type: str, column: str = ""):
        self.value = value
        self.declared_type = declared_type
        self.column = column
        where = f" in column '{column}'" if column else ""
        super().__init__(
            f"Value {value!r} of type '{declared_type}'{where} cannot be written as a C# literal.\n\n"
            f"Suggestions:\n"
            f"1. C# decimal has no NaN or Infinity; replace those values in the table\n"
            f"2. Store such values in a double precision column instead"
        )


class ConfigurationError(DataScaffolderError):
    """Configuration document is missing required content or is malformed."""

    def __init__(self, path: Path | str, detail: str):
        self.path = Path(path)
        super().__init__(
            f"Invalid configuration in '{path}': {detail}\n\n"
            f"Suggestions:\n"
            f"1. appsettings*.json needs a top-level \"ConnectionStrings\" object\n"
            f"2. TOML documents need a [connection_strings] table\n"
            f"3. Every connection string value must be a non-empty string"
        )


class MetadataReadError(DataScaffolderError):
    """Catalog or annotation query failed for a data source."""

    def __init__(self, source: str, detail: str):
        self.source = source
        super().__init__(
            f"Could not read schema metadata for data source '{source}': {detail}\n\n"
            f"Suggestions:\n"
            f"1. Check the connection string and that the database is reachable\n"
            f"2. Ensure the role can read information_schema and pg_catalog"
        )


class MaterializeError(DataScaffolderError):
    """Row fetch failed for a table."""

    def __init__(self, source: str, table: str, detail: str):
        self.source = source
        self.table = table
        super().__init__(
            f"Could not read rows of table '{table}' in data source '{source}': {detail}\n\n"
            f"Suggestions:\n"
            f"1. Ensure the role has SELECT permission on '{table}'\n"
            f"2. Re-run with --skip-failed-tables to continue without it"
        )
