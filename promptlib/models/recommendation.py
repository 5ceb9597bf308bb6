from typing import List
from pydantic import BaseModel, ConfigDict, Field

from promptlib.models.prompt import Prompt


class Recommendation(BaseModel):
    """A suggested prompt with the reasons it scored, in scoring order."""
    model_config = ConfigDict(frozen=True)

    prompt: Prompt
    reasons: List[str] = Field(default_factory=list)
