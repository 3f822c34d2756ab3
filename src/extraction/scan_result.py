"""Structured result of a label scan."""

from dataclasses import asdict, dataclass, fields, replace

FIELD_NAMES: tuple[str, ...] = ("stock_code", "sales_order", "qty", "po", "weight")


@dataclass(frozen=True)
class ScanResult:
    """Fields extracted from one scanned label.

    A field is ``None`` when it was not found on the label; values are
    never guessed.
    """

    stock_code: str | None = None
    sales_order: str | None = None
    qty: str | None = None
    po: str | None = None
    weight: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        """Return the fields as a plain dictionary."""
        return asdict(self)

    def missing_fields(self) -> list[str]:
        """Names of fields that were not found, for manual entry."""
        return [f.name for f in fields(self) if getattr(self, f.name) is None]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def with_edits(self, **changes: str | None) -> "ScanResult":
        """Return a copy with user-edited values.

        Blank strings are stored as ``None`` so an emptied field reads as
        missing. Edited values are not re-validated.

        Raises:
            TypeError: If a change names an unknown field.
        """
        cleaned = {
            name: (value.strip() or None) if isinstance(value, str) else value
            for name, value in changes.items()
        }
        return replace(self, **cleaned)
