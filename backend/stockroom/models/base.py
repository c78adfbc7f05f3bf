from __future__ import annotations


class DocumentMixin:
    """
    Bridges ORM rows and the plain-dict documents exchanged with the
    document store.

    DOCUMENT_FIELDS lists the columns that round-trip; "id" is always included.
    """
    DOCUMENT_FIELDS: tuple[str, ...] = ()

    def to_document(self) -> dict:
        doc = {"id": self.id}
        for name in self.DOCUMENT_FIELDS:
            doc[name] = getattr(self, name)
        return doc

    def apply_document(self, data: dict) -> None:
        for name, value in data.items():
            if name == "id":
                continue
            if name not in self.DOCUMENT_FIELDS:
                raise KeyError(f"{type(self).__name__} has no field {name!r}")
            setattr(self, name, value)
