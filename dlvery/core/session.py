"""
The logged-in delivery agent.

The agent is an explicit value handed to the queue and lifecycle endpoints.
It is loaded from the request (cookie, or header for non-browser clients) and
saved back onto the response; nothing is kept in process globals.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException, Request, Response, status

from dlvery.core.config import settings


@dataclass(frozen=True)
class AgentSession:
    agent: str

    @classmethod
    def load(cls, request: Request) -> Optional["AgentSession"]:
        value = request.headers.get(settings.agent_header_name) or request.cookies.get(settings.agent_cookie_name)
        value = (value or "").strip()
        return cls(agent=value) if value else None

    def save(self, response: Response) -> None:
        response.set_cookie(settings.agent_cookie_name, self.agent, httponly=True, samesite="lax")

    @staticmethod
    def clear(response: Response) -> None:
        response.delete_cookie(settings.agent_cookie_name)


def current_agent(request: Request) -> AgentSession:
    """Dependency: the session agent, 401 when nobody is logged in."""
    session = AgentSession.load(request)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Delivery agent not set")
    return session
