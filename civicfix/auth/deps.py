from fastapi import Request, Depends, HTTPException
from sqlalchemy.orm import Session
from civicfix.db.session import get_db
from civicfix.core.security import read_session
from civicfix.core.workflow import Actor
from civicfix.db.models.user import User

SESSION_COOKIE = "sid"

def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user_id = read_session(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid session")
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    """Workflow identity of the logged-in user."""
    return Actor.from_user(user)
