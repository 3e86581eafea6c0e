from flask import Blueprint
from sqlalchemy import text

from api import get_storage

bp = Blueprint("health", __name__)

VERSION = "1.0.0"


@bp.get("/health")
def health():
    """
    Health check (includes a database round trip)
    ---
    tags:
      - Health
    responses:
      200:
        description: API and database are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            version:
              type: string
              example: 1.0.0
      500:
        description: Storage is unavailable
    """
    with get_storage().transaction() as session:
        session.execute(text("SELECT 1"))
    return {"status": "ok", "version": VERSION}, 200
