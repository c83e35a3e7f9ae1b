"""
NoteSync Tests - In-Memory Fake Backend
========================================

What:  A FastAPI app implementing the notes/bookmarks REST surface in memory.
How:   Mounted under /api and reached through httpx.ASGITransport, so the real
       ApiClient, hooks and stores run end to end without a server.

Test controls:
    requests              every request received, in order (method, path, at)
    rate_limit(n, path)   answer the next n requests (to `path`, if given) with 429
    calls(method, path)   requests matching method and path
"""

import itertools
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response


@dataclass(frozen=True)
class RecordedRequest:
    method: str
    path: str
    at: float
    authorization: Optional[str]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeBackend:
    """Minimal stand-in for the notes/bookmarks API."""

    def __init__(self):
        self.requests: List[RecordedRequest] = []
        self.users: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.notes: Dict[str, Dict[str, Any]] = {}
        self.bookmarks: Dict[str, Dict[str, Any]] = {}
        self._rate_limited = 0
        self._rate_limited_path: Optional[str] = None
        self._ids = itertools.count(1)
        self.app = self._build_app()

    # ── Test controls ─────────────────────────────────────────────────────

    def rate_limit(self, count: int, path: Optional[str] = None) -> None:
        self._rate_limited = count
        self._rate_limited_path = path

    def calls(self, method: str, path: str) -> List[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.path == path]

    def new_id(self) -> str:
        # 24 hex digits, the first 8 being a unix timestamp
        return f"{int(time.time()):08x}{next(self._ids):016x}"

    # ── App ───────────────────────────────────────────────────────────────

    def _build_app(self) -> FastAPI:
        app = FastAPI()
        backend = self

        @app.middleware("http")
        async def record_and_throttle(request: Request, call_next):
            backend.requests.append(
                RecordedRequest(
                    method=request.method,
                    path=request.url.path,
                    at=time.monotonic(),
                    authorization=request.headers.get("authorization"),
                )
            )
            throttled = backend._rate_limited > 0 and (
                backend._rate_limited_path is None
                or backend._rate_limited_path == request.url.path
            )
            if throttled:
                backend._rate_limited -= 1
                return JSONResponse(
                    status_code=429,
                    content={"error": "Too many requests"},
                    headers={"Retry-After": "1"},
                )
            return await call_next(request)

        @app.exception_handler(HTTPException)
        async def error_body(request: Request, exc: HTTPException):
            return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

        app.include_router(self._auth_router(), prefix="/api/auth")
        app.include_router(self._notes_router(), prefix="/api/notes")
        app.include_router(self._bookmarks_router(), prefix="/api/bookmarks")
        return app

    def _current_user(self, authorization: Optional[str] = Header(default=None)) -> str:
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="No token provided")
        username = self.tokens.get(authorization[len("Bearer "):])
        if username is None:
            raise HTTPException(status_code=401, detail="Invalid token")
        return username

    def _issue(self, username: str) -> Dict[str, Any]:
        token = secrets.token_hex(16)
        self.tokens[token] = username
        user = self.users[username]
        return {
            "token": token,
            "user": {"id": user["id"], "username": username, "email": user["email"]},
        }

    def _auth_router(self) -> APIRouter:
        router = APIRouter()

        @router.post("/register")
        async def register(body: Dict[str, Any] = Body(...)):
            username = body.get("username")
            if not username or not body.get("password"):
                raise HTTPException(status_code=400, detail="Username and password are required")
            if username in self.users:
                raise HTTPException(status_code=400, detail="User already exists")
            self.users[username] = {
                "id": self.new_id(),
                "email": body.get("email"),
                "password": body["password"],
            }
            return JSONResponse(status_code=201, content=self._issue(username))

        @router.post("/login")
        async def login(body: Dict[str, Any] = Body(...)):
            user = self.users.get(body.get("username", ""))
            if user is None or user["password"] != body.get("password"):
                raise HTTPException(status_code=401, detail="Invalid credentials")
            return self._issue(body["username"])

        return router

    def _owned(self, table: Dict[str, Dict[str, Any]], item_id: str, owner: str, label: str):
        item = table.get(item_id)
        if item is None or item["owner"] != owner:
            raise HTTPException(status_code=404, detail=f"{label} not found")
        return item

    @staticmethod
    def _public(item: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in item.items() if k != "owner"}

    def _notes_router(self) -> APIRouter:
        router = APIRouter()
        current_user = self._current_user

        @router.get("")
        async def list_notes(owner: str = Depends(current_user)):
            items = [n for n in self.notes.values() if n["owner"] == owner]
            return [self._public(n) for n in reversed(items)]

        @router.post("")
        async def create_note(body: Dict[str, Any] = Body(...), owner: str = Depends(current_user)):
            if not body.get("content"):
                raise HTTPException(status_code=400, detail="Content is required")
            stamp = _now()
            note = {
                "_id": self.new_id(),
                "title": body.get("title", ""),
                "content": body["content"],
                "tags": body.get("tags", []),
                "isFavorite": bool(body.get("isFavorite", False)),
                "createdAt": stamp,
                "updatedAt": stamp,
                "owner": owner,
            }
            self.notes[note["_id"]] = note
            return JSONResponse(status_code=201, content=self._public(note))

        @router.put("/{note_id}")
        async def update_note(
            note_id: str, body: Dict[str, Any] = Body(...), owner: str = Depends(current_user)
        ):
            note = self._owned(self.notes, note_id, owner, "Note")
            for field in ("title", "content", "tags", "isFavorite"):
                if field in body:
                    note[field] = body[field]
            note["updatedAt"] = _now()
            return self._public(note)

        @router.patch("/{note_id}/favorite")
        async def favorite_note(
            note_id: str, body: Dict[str, Any] = Body(...), owner: str = Depends(current_user)
        ):
            note = self._owned(self.notes, note_id, owner, "Note")
            note["isFavorite"] = bool(body.get("isFavorite"))
            note["updatedAt"] = _now()
            return self._public(note)

        @router.delete("/{note_id}")
        async def delete_note(note_id: str, owner: str = Depends(current_user)):
            self._owned(self.notes, note_id, owner, "Note")
            del self.notes[note_id]
            return {"message": "Note deleted"}

        return router

    def _bookmarks_router(self) -> APIRouter:
        router = APIRouter()
        current_user = self._current_user

        @router.get("")
        async def list_bookmarks(owner: str = Depends(current_user)):
            return [self._public(b) for b in self.bookmarks.values() if b["owner"] == owner]

        @router.post("")
        async def create_bookmark(
            body: Dict[str, Any] = Body(...), owner: str = Depends(current_user)
        ):
            if not body.get("url"):
                raise HTTPException(status_code=400, detail="URL is required")
            stamp = _now()
            bookmark = {
                "_id": self.new_id(),
                "title": body.get("title", ""),
                "url": body["url"],
                "description": body.get("description", ""),
                "tags": body.get("tags", []),
                "isFavorite": bool(body.get("isFavorite", False)),
                "createdAt": stamp,
                "updatedAt": stamp,
                "owner": owner,
            }
            self.bookmarks[bookmark["_id"]] = bookmark
            return JSONResponse(status_code=201, content=self._public(bookmark))

        @router.put("/{bookmark_id}")
        async def update_bookmark(
            bookmark_id: str, body: Dict[str, Any] = Body(...), owner: str = Depends(current_user)
        ):
            bookmark = self._owned(self.bookmarks, bookmark_id, owner, "Bookmark")
            for field in ("title", "url", "description", "tags", "isFavorite"):
                if field in body:
                    bookmark[field] = body[field]
            bookmark["updatedAt"] = _now()
            return self._public(bookmark)

        @router.delete("/{bookmark_id}")
        async def delete_bookmark(bookmark_id: str, owner: str = Depends(current_user)):
            self._owned(self.bookmarks, bookmark_id, owner, "Bookmark")
            del self.bookmarks[bookmark_id]
            return Response(status_code=204)

        return router
