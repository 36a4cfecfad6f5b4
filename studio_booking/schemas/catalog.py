from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# Program schemas
class ProgramBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    default_duration: int = Field(60, ge=5, le=600)
    color_class: str = "bg-blue-500"
    text_color_class: str = "text-white"
    is_active: bool = True


class ProgramCreate(ProgramBase):
    pass


class ProgramUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    default_duration: Optional[int] = Field(None, ge=5, le=600)
    color_class: Optional[str] = None
    text_color_class: Optional[str] = None
    is_active: Optional[bool] = None


class Program(ProgramBase):
    id: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# Instructor schemas
class InstructorBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_active: bool = True


class InstructorCreate(InstructorBase):
    pass


class InstructorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_active: Optional[bool] = None


class Instructor(InstructorBase):
    id: int

    model_config = {"from_attributes": True}


# Studio schemas
class StudioBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    capacity: int = Field(..., gt=0)
    description: Optional[str] = None
    is_active: bool = True


class StudioCreate(StudioBase):
    pass


class StudioUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    capacity: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class Studio(StudioBase):
    id: int

    model_config = {"from_attributes": True}
