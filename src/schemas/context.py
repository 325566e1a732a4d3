from typing import List, Optional
from pydantic import BaseModel, Field

class Citation(BaseModel):
    title: str
    heading: Optional[str] = None

class ChatContext(BaseModel):
    """
    Context block handed to the chat renderer.
    An empty `context` means nothing relevant was found and the renderer
    should use its generic prompt.
    """
    context: str = ""
    citations: List[Citation] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.context
