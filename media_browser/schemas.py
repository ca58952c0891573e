from __future__ import annotations

from pydantic import BaseModel


class RenameRequest(BaseModel):
    path: str = ''
    new_name: str = ''


class RenameResponse(BaseModel):
    ok: bool
    new_path: str
