# academy_api/services/users.py
from academy_api.exceptions import NotFoundError, validate_id
from academy_api.models.user import User


def get_user(db, user_id, label="user"):
    """Load a user or raise NotFoundError naming the role it was expected to play."""
    user_id = validate_id(user_id, f"{label} id")
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError(f"{label.capitalize()} {user_id} not found.", code=f"{label}_not_found")
    return user
