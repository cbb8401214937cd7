from datetime import datetime, timezone

from flask import Blueprint, current_app

bp = Blueprint("health", __name__)

@bp.get("/health")
def health():
    """
    Health check
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
              example: healthy
            service:
              type: string
              example: AuthenticationService
            database:
              type: string
              example: connected
            timestamp:
              type: string
      503:
        description: Database unreachable
    """
    db_ok = current_app.extensions["storage"].ping()
    body = {
        "status": "healthy" if db_ok else "unhealthy",
        "service": "AuthenticationService",
        "version": "1.0.0",
        "database": "connected" if db_ok else "disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return body, 200 if db_ok else 503
