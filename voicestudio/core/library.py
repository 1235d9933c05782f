from __future__ import annotations

import logging
import re
import secrets
import time
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from voicestudio.core.models import AudioFile, Category, User
from voicestudio.core.storage import LocalStorage, StorageError

log = logging.getLogger("voicestudio.library")

UNSET: Any = object()

_WS = re.compile(r"\s+")


class LibraryError(ValueError):
    pass


def make_file_key(user_id: str, name: str, millis: int | None = None) -> str:
    if millis is None:
        millis = int(time.time() * 1000)
    return f"{user_id}/{millis}-{_WS.sub('-', name)}.mp3"


def parse_duration(raw: Any) -> Decimal | None:
    if raw is None or raw == "":
        return None
    try:
        return Decimal(str(raw)).quantize(Decimal("0.01"))
    except InvalidOperation as e:
        raise LibraryError(f"Invalid duration: {raw!r}") from e


class UserService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, name: str, email: str) -> User:
        email = email.strip().lower()
        if self.db.scalar(select(User).where(User.email == email)):
            raise LibraryError(f"User already exists: {email}")
        u = User(name=name.strip(), email=email, api_token=secrets.token_urlsafe(32))
        self.db.add(u)
        self.db.commit()
        return u

    def by_token(self, token: str) -> User | None:
        if not token:
            return None
        return self.db.scalar(select(User).where(User.api_token == token))


class CategoryService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, user_id: str, name: str, description: str = "") -> Category:
        c = Category(user_id=user_id, name=name.strip(), description=description or "")
        self.db.add(c)
        self.db.commit()
        return c

    def get(self, user_id: str, category_id: str) -> Category | None:
        return self.db.scalar(
            select(Category).where(Category.id == category_id, Category.user_id == user_id)
        )

    def list(self, user_id: str) -> list[Category]:
        stmt = select(Category).where(Category.user_id == user_id).order_by(Category.name.asc())
        return list(self.db.scalars(stmt))


class AudioLibraryService:
    """A user's saved clips: the object in storage plus its metadata row."""

    def __init__(self, db: Session, storage: LocalStorage) -> None:
        self.db = db
        self.storage = storage

    def _check_category(self, user_id: str, category_id: str | None) -> None:
        if category_id and CategoryService(self.db).get(user_id, category_id) is None:
            raise LibraryError(f"Unknown category: {category_id}")

    def save(
        self,
        user_id: str,
        name: str,
        data: bytes,
        input_script: str,
        voice: str,
        prompt_instructions: str | None = None,
        category_id: str | None = None,
        duration: Any = None,
    ) -> AudioFile:
        category_id = category_id or None
        self._check_category(user_id, category_id)
        seconds = parse_duration(duration)

        key = make_file_key(user_id, name)
        size = self.storage.upload(key, data)

        row = AudioFile(
            user_id=user_id,
            category_id=category_id,
            name=name,
            file_url=self.storage.public_url(key),
            file_key=key,
            file_size=size,
            duration=seconds,
            input_script=input_script,
            voice=voice,
            prompt_instructions=prompt_instructions or None,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self.storage.remove([key])
            raise
        return row

    def list(self, user_id: str) -> list[AudioFile]:
        stmt = (
            select(AudioFile)
            .where(AudioFile.user_id == user_id)
            .order_by(AudioFile.created_at.desc())
        )
        return list(self.db.scalars(stmt))

    def get(self, user_id: str, audio_id: str) -> AudioFile | None:
        return self.db.scalar(
            select(AudioFile).where(AudioFile.id == audio_id, AudioFile.user_id == user_id).limit(1)
        )

    def update(self, user_id: str, audio_id: str, name: Any = UNSET, category_id: Any = UNSET) -> AudioFile | None:
        row = self.get(user_id, audio_id)
        if row is None:
            return None
        if name is not UNSET:
            if not isinstance(name, str) or not name.strip():
                raise LibraryError("Name must be a non-empty string")
            row.name = name
        if category_id is not UNSET:
            self._check_category(user_id, category_id)
            row.category_id = category_id or None
        row.updated_at = datetime.utcnow()
        self.db.commit()
        return row

    def delete(self, user_id: str, audio_id: str) -> bool:
        row = self.get(user_id, audio_id)
        if row is None:
            return False
        try:
            self.storage.remove([row.file_key])
        except (OSError, StorageError) as e:
            # database deletion continues even if storage fails
            log.warning(f"[library] storage removal failed for {row.file_key}: {e}")
        self.db.delete(row)
        self.db.commit()
        return True
