"""SQLModel tables backing the options substrate.

Temporaries are stored as plain rows in a generic name/value table, the
same way any other option would be. Local (site) temporaries live in
``options``; network temporaries live in ``sitemeta`` on multisite
installs and in ``options`` otherwise.
"""

from sqlmodel import SQLModel, Field


class Option(SQLModel, table=True):
    """Generic name/value option row.

    ``autoload`` marks rows that are loaded in bulk with every request
    (the preloaded set). It is fixed when the row is created.
    """

    __tablename__ = "options"

    name: str = Field(primary_key=True, max_length=191)
    value: str = Field(max_length=1000000)  # JSON serialized
    autoload: bool = Field(default=True, index=True)


class SiteMeta(SQLModel, table=True):
    """Network-wide option row used on multisite installs."""

    __tablename__ = "sitemeta"

    name: str = Field(primary_key=True, max_length=191)
    value: str = Field(max_length=1000000)  # JSON serialized
    autoload: bool = Field(default=False)
