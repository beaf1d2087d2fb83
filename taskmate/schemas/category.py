from pydantic import BaseModel, Field, field_validator
from typing import Optional
import re

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Category name is required')
        return v

    @field_validator('color')
    @classmethod
    def validate_color(cls, v):
        if v is None:
            return v
        if not re.match(r'^#[0-9A-Fa-f]{6}$', v):
            raise ValueError('color must look like #RRGGBB')
        return v.upper()

class CategoryResponse(BaseModel):
    category_id: int
    name: str
    color: Optional[str] = None

    class Config:
        from_attributes = True
