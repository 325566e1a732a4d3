from pydantic import BaseModel, ConfigDict

class NoteRecord(BaseModel):
    """The slice of a note the indexing pipeline reads."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    owner_id: str
    is_deleted: bool = False
