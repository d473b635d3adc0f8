from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class DocumentModel(BaseModel):
    """
    Base for everything read from Firestore. Documents written by older
    clients leave fields out or store explicit nulls; both fall back to the
    model defaults here instead of at every read site.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @classmethod
    def from_document(cls, data: Dict[str, Any], doc_id: Optional[str] = None):
        payload = dict(data or {})
        doc_id = doc_id or payload.pop("_doc_id", None) or payload.get("id")
        payload.pop("_doc_id", None)
        if doc_id is not None:
            payload["id"] = doc_id
        return cls.model_validate(payload)

    def to_document(self) -> Dict[str, Any]:
        """Firestore payload; the id lives in the document path, not the body."""
        return self.model_dump(exclude={"id"}, mode="json")
