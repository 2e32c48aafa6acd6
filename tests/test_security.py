from datetime import timedelta

from jose import jwt

from cvforge.core.config import ALGORITHM, SECRET_KEY
from cvforge.core.security import create_access_token, hash_password, verify_password


def test_password_round_trip():
    hashed = hash_password("SecurePass123")
    assert verify_password("SecurePass123", hashed)
    assert not verify_password("wrong", hashed)


def test_long_passwords_are_clamped_to_bcrypt_limit():
    hashed = hash_password("x" * 100)
    assert verify_password("x" * 72, hashed)


def test_token_subject_is_user_id():
    token = create_access_token("user-123", expires_delta=timedelta(minutes=5), role="admin")
    payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    assert payload["sub"] == "user-123"
    assert payload["role"] == "admin"
    assert "exp" in payload


def test_sanitize_log_data_redacts_secrets():
    from cvforge.core.logging_config import sanitize_log_data

    data = {"order_id": "o-1", "access_code": "ac_123", "stripe_secret_key": "sk_live", "package_type": "premium"}

    clean = sanitize_log_data(data)

    assert clean["order_id"] == "o-1"
    assert clean["package_type"] == "premium"
    assert clean["access_code"] == "***REDACTED***"
    assert clean["stripe_secret_key"] == "***REDACTED***"
    assert data["access_code"] == "ac_123"
