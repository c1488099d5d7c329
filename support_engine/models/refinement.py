from typing import List
from pydantic import BaseModel, Field


class KeywordRefinement(BaseModel):
    """The formal output contract for the Keyword Refiner Agent."""
    keywords: List[str] = Field(
        default_factory=list,
        description="3-5 concrete, business-relevant key phrases taken from the text."
    )
