from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Protocol

USER_ID_ENV = "MOCKTEST_USER_ID"


class IdentityProvider(Protocol):
    def current_user_id(self) -> str | None:
        """Opaque id of the signed-in candidate, or None when anonymous."""


class StaticIdentity:
    def __init__(self, user_id: str | None = None) -> None:
        self._user_id = None if user_id is None or user_id.strip() == "" else user_id

    def current_user_id(self) -> str | None:
        return self._user_id


def identity_from_env(environ: Mapping[str, str] | None = None) -> StaticIdentity:
    env = os.environ if environ is None else environ
    return StaticIdentity(env.get(USER_ID_ENV))
