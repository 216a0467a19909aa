from dataclasses import asdict, fields, is_dataclass
from typing import Any, List, Self


class GoogleWorkSpaceResourceBase():
    """
    Intended to be subclassed by a dataclass but isnt actually a dataclass.
    Subclasses map one-to-one onto the JSON resources of the Google APIs, so
    field names keep the API's camelCase.  A field can carry a display name in
    its metadata ({"name": "Email"}) which is what the output formatter matches
    headers against.
    """
    def to_base(self) -> dict:
        """
        Default just return the dict representation of the object as needed by
        the GWS client.  Something more complicated can override.
        Call fixup() first to ensure all fields are in correct format.
        """
        self.fixup()
        return asdict(self)

    def trim(self) -> dict|None:
        """
        Return a 'trimmed' dict of the resource.  That is, removing any top level attributes
        that are empty or None.  Numbers and bools are kept even when falsy as
        False or 0 can be meaningful.  This is what gets sent on insert/patch.
        """
        b = self.to_base()
        if b:
            for k, v in list(b.items()):
                if v is None or (type(v) not in [int, bool, float] and not v):
                    del b[k]
        return b

    def fixup(self) -> None:
        """
        notify a subclass to do any field adjustments
        """
        pass

    def update_fields(self, **kwargs) -> List[str]:
        """
        Update fields that may be present.  Unknown keys are ignored.
        """
        updated_fields = []
        if is_dataclass(self):
            names = {f.name for f in fields(self)}
            for k, v in kwargs.items():
                if v is not None and k in names:
                    setattr(self, k, v)
                    updated_fields.append(k)
            self.fixup()
        return updated_fields

    @classmethod
    def from_response(cls, response: dict|None) -> Self:
        """
        Build from an API response.  The APIs add fields over time so anything
        the dataclass doesn't know about is dropped rather than blowing up __init__.
        """
        if not response:
            return cls()
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in response.items() if k in names})

    def field_items(self) -> list[tuple[str, Any]]:
        """
        (display name, value) pairs in declaration order.  Used for tabular and
        plain output.
        """
        items = []
        for f in fields(self):
            if f.metadata.get("hidden"):
                continue
            items.append((f.metadata.get("name", f.name), getattr(self, f.name)))
        return items
