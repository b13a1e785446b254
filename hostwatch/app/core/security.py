from fastapi import Depends, Header, HTTPException, status

from hostwatch.app.state import MonitorState, get_state


async def verify_token(
    authorization: str | None = Header(None),
    state: MonitorState = Depends(get_state),
) -> None:
    """Require a bearer token when one is configured; open access otherwise."""
    expected = state.settings.api_token
    if not expected:
        return
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1]
    if token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
