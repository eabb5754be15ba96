"""Pydantic schemas: request validation and the records handed out by the store."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import (
    BaseModel, ConfigDict, EmailStr, Field, HttpUrl, TypeAdapter, ValidationError, field_validator,
)
from pydantic.alias_generators import to_camel

from errors import InvalidInput

ModelT = TypeVar("ModelT", bound=BaseModel)

_http_url = TypeAdapter(HttpUrl)


def is_absolute_url(value: str) -> bool:
    try:
        _http_url.validate_python(value)
    except ValidationError:
        return False
    return True


def _check_url(value: str) -> str:
    # validated as HttpUrl but stored as sent, so payloads round-trip unchanged
    if not is_absolute_url(value):
        raise ValueError("Invalid url")
    return value


def _check_image_ref(value: str) -> str:
    # local uploads are referenced by a server-relative path
    if value.startswith("/") and not value.startswith("//"):
        return value
    if is_absolute_url(value):
        return value
    raise ValueError("Must be an absolute URL or a path starting with '/'")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_json(self) -> Dict[str, Any]:
        """Dump with wire names, leaving out fields the client never sent."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


# ---------- Portfolio ----------

class SocialMedia(CamelModel):
    name: str
    url: str

    @field_validator("url")
    @classmethod
    def check_url(cls, value: str) -> str:
        return _check_url(value)


class Project(CamelModel):
    title: str
    description: Optional[str] = None
    image: Optional[str] = None
    github: str
    order: Optional[Union[int, float]] = None

    @field_validator("github")
    @classmethod
    def check_github(cls, value: str) -> str:
        return _check_url(value)

    @field_validator("image")
    @classmethod
    def check_image(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return _check_image_ref(value)


class PortfolioData(CamelModel):
    full_name: str
    title: str
    short_bio: str
    profile_picture: str
    detailed_bio: str
    skills: List[str]
    projects: List[Project]
    social_media: List[SocialMedia]

    @field_validator("profile_picture")
    @classmethod
    def check_profile_picture(cls, value: str) -> str:
        return _check_image_ref(value)


# ---------- Contact ----------

class ContactCreate(CamelModel):
    name: str = Field(min_length=2)
    email: EmailStr
    subject: Optional[str] = None
    message: str = Field(min_length=10)
    portfolio_id: Optional[int] = None
    created_at: datetime


# ---------- Store records ----------

class UserRecord(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    password: str


class PortfolioRecord(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    data: Dict[str, Any]


class ContactMessageRecord(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    subject: Optional[str] = None
    message: str
    created_at: str
    portfolio_id: Optional[int] = None


# ---------- Validation entrypoint ----------

def format_loc(loc) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def format_msg(msg: str) -> str:
    prefix = "Value error, "
    return msg[len(prefix):] if msg.startswith(prefix) else msg


def validation_errors(raw_errors) -> List[Dict[str, str]]:
    return [
        {"field": format_loc(err["loc"]), "message": format_msg(err["msg"])}
        for err in raw_errors
    ]


def errors_message(errors: List[Dict[str, str]]) -> str:
    parts = []
    for err in errors:
        if err["field"]:
            parts.append(f'{err["message"]} at "{err["field"]}"')
        else:
            parts.append(err["message"])
    return "Validation error: " + "; ".join(parts)


def validate_payload(model: Type[ModelT], raw: Any) -> ModelT:
    """Validate *raw* against *model* or raise InvalidInput listing every bad field."""
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        errors = validation_errors(exc.errors())
        raise InvalidInput(errors_message(errors), errors=errors) from exc
