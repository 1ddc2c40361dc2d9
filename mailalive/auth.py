import base64
import binascii
import secrets

from fastapi import HTTPException, Request, status

from . import config as cfg


def require_api_key(request: Request):
    if not cfg.API_KEY:
        return
    key = request.headers.get("x-api-key") or request.query_params.get("api_key") or ""
    if not secrets.compare_digest(key.encode(), cfg.API_KEY.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail={"error": "invalid api key"})


def require_metrics_basic_auth(request: Request):
    if not (cfg.METRICS_USER and cfg.METRICS_PASS):
        return
    auth = request.headers.get("authorization", "")
    if not auth.lower().startswith("basic "):
        raise HTTPException(status_code=401, detail={"error": "basic auth required"}, headers={"WWW-Authenticate": "Basic"})
    try:
        decoded = base64.b64decode(auth.split(" ", 1)[1], validate=True).decode()
        user, pwd = decoded.split(":", 1)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        user, pwd = "", ""
    ok_user = secrets.compare_digest(user.encode(), cfg.METRICS_USER.encode())
    ok_pass = secrets.compare_digest(pwd.encode(), cfg.METRICS_PASS.encode())
    if not (ok_user and ok_pass):
        raise HTTPException(status_code=401, detail={"error": "invalid credentials"}, headers={"WWW-Authenticate": "Basic"})
