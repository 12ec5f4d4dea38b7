# session_store/models/request_state.py

import asyncio
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RequestTokenState:
    """
    Token bookkeeping for one request.

    ``token`` is the token currently readable and writable through the
    session. ``new_token`` is filled when the response must carry a cookie:
    either the token was minted for this request or it was regenerated.
    Owned by a single request, never shared or persisted.
    """
    token: str
    new_token: Optional[str] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def needs_cookie(self) -> bool:
        return self.new_token is not None
