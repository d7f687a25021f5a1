from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MaterialInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    type: str
    filename: str
    mime_type: str
    size: int
    created_by: int
    subject_id: int
    class_id: Optional[int] = None
    origin: int
    created_at: Optional[datetime] = None
