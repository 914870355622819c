import secrets
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from flask import current_app

from models import db, TokenBlacklist

ACCESS_SALT = "access-token"
REFRESH_SALT = "refresh-token"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"])


def _payload(user):
    # jti keeps two tokens issued in the same second distinct
    return {"sub": user.get_id(), "role": user.role, "jti": secrets.token_hex(8)}


def generate_access_token(user):
    return _serializer().dumps(_payload(user), salt=ACCESS_SALT)


def generate_refresh_token(user):
    return _serializer().dumps(_payload(user), salt=REFRESH_SALT)


def issue_tokens(user):
    return {
        "token": generate_access_token(user),
        "refreshToken": generate_refresh_token(user),
    }


def _verify(token, salt, max_age):
    try:
        payload = _serializer().loads(token, salt=salt, max_age=max_age)
    except (SignatureExpired, BadSignature):
        return None
    if TokenBlacklist.is_revoked(token):
        return None
    return payload


def verify_access_token(token):
    return _verify(token, ACCESS_SALT, current_app.config["ACCESS_TOKEN_MAX_AGE"])


def verify_refresh_token(token):
    return _verify(token, REFRESH_SALT, current_app.config["REFRESH_TOKEN_MAX_AGE"])


def revoke_token(token, max_age):
    # Keep the marker at least as long as the token itself could be replayed
    ttl = max(current_app.config["TOKEN_BLACKLIST_TTL"], max_age)
    TokenBlacklist.revoke(token, ttl)
    TokenBlacklist.purge_expired()
    db.session.commit()
