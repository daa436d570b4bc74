from pydantic import BaseModel, ConfigDict
from typing import Optional

class MediaRequest(BaseModel):
    """One proxied media fetch (separated from HTTP concerns)"""
    model_config = ConfigDict(frozen=True)

    raw_url: str
    resolved_url: str
    desired_filename: Optional[str] = None
