from flask import Blueprint, current_app

from security.decorators import get_auth_service

bp = Blueprint("admin", __name__, url_prefix="/admin")


@bp.post("/reset")
def reset():
    """
    Delete every user and refresh token. Development platform only.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Everything deleted
      403:
        description: Not available outside development
    """
    get_auth_service().refresh_tokens.delete_all_for_reset(
        allowed=bool(current_app.config.get("ALLOW_RESET"))
    )
    return {"message": "All users have been deleted"}, 200
