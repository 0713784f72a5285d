"""Canonical user profile.

API responses spell the same field many ways (`avatarUrl`,
`profile_picture_url`, `photo_url`, ...). Every alias is listed here and
resolved once when a response is parsed; nothing downstream looks at the
raw dict.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class UserProfile(BaseModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id", "user_id", "userId"))
    email: str | None = None
    phone: str | None = None
    username: str | None = None
    full_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("full_name", "fullName", "name", "display_name", "displayName"),
    )
    first_name: str | None = Field(
        default=None, validation_alias=AliasChoices("first_name", "firstName")
    )
    last_name: str | None = Field(
        default=None, validation_alias=AliasChoices("last_name", "lastName")
    )
    profile_photo_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "profile_photo_url",
            "profilePhotoUrl",
            "profile_picture_url",
            "profilePictureUrl",
            "profilePicture",
            "profileImage",
            "avatarUrl",
            "avatar_url",
            "avatar",
            "photo_url",
            "photoUrl",
            "photo",
        ),
    )
    is_verified: bool = Field(default=False, validation_alias=AliasChoices("is_verified", "isVerified"))
    phone_verified: bool = Field(
        default=False, validation_alias=AliasChoices("phone_verified", "phoneVerified")
    )
    email_verified: bool = Field(
        default=False, validation_alias=AliasChoices("email_verified", "emailVerified")
    )
    profile_completed: bool = Field(
        default=False,
        validation_alias=AliasChoices("profile_completed", "profile_complete", "profileCompleted"),
    )
    language_preference: str | None = Field(
        default=None,
        validation_alias=AliasChoices("language_preference", "languagePreference", "preferred_language"),
    )
    bio: str | None = None
    location: str | None = Field(
        default=None,
        validation_alias=AliasChoices("location", "current_location", "currentLocation"),
    )
    profession: str | None = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _coerce_id(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for key in ("_id", "id", "user_id", "userId"):
                if data.get(key) is not None:
                    data = {**data, key: str(data[key])}
                    break
        return data

    @model_validator(mode="after")
    def _fill_full_name(self) -> "UserProfile":
        if not self.full_name:
            parts = [p for p in (self.first_name, self.last_name) if p]
            if parts:
                self.full_name = " ".join(parts)
        return self

    @property
    def display_name(self) -> str:
        """Username if set, otherwise the first word of the full name."""
        if self.username:
            return self.username
        if self.full_name:
            return self.full_name.split(" ")[0] or self.full_name
        return ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "UserProfile":
        """Parse a user record, unwrapping `data` / `user` envelopes."""
        body = payload
        for envelope in ("data", "user"):
            inner = body.get(envelope) if isinstance(body, dict) else None
            if isinstance(inner, dict):
                body = inner
        return cls.model_validate(body)
