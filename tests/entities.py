"""Entity types shared by the tests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Annotated

from sqlhooks import Email, Groups, NotEmpty

EMAIL_UPDATE = "email_update"


@dataclass
class Person:
    first_name: NotEmpty
    last_name: NotEmpty
    email: Annotated[Email | None, Groups(EMAIL_UPDATE)] = None
    id: int = 0
    created: datetime | None = None
    modified: datetime | None = None


@dataclass
class Post:
    content: str | None
    user_id: int
    id: int | None = None
