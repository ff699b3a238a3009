from itsdangerous import URLSafeTimedSerializer

from app.portal.session import SessionCodec, UserSession, session_from_payload


def test_codec_round_trip():
    codec = SessionCodec("k")
    value = codec.encode(UserSession("u1", "LECTURER", "Ama"))
    assert codec.decode(value) == UserSession("u1", "LECTURER", "Ama")


def test_decode_rejects_tampered_value():
    codec = SessionCodec("k")
    value = codec.encode(UserSession("u1", "LECTURER"))
    assert codec.decode(value[:-2] + ("A" if value[-1] != "A" else "B") + value[-1]) is None
    assert codec.decode("not-a-cookie") is None
    assert codec.decode("") is None
    assert codec.decode(None) is None


def test_decode_rejects_other_secret():
    value = SessionCodec("k1").encode(UserSession("u1", "REGISTRY"))
    assert SessionCodec("k2").decode(value) is None


def test_decode_rejects_expired_cookie():
    value = SessionCodec("k").encode(UserSession("u1", "REGISTRY"))
    assert SessionCodec("k", max_age=-1).decode(value) is None


def test_decode_rejects_wrong_shape():
    # correctly signed, but not a session payload
    raw = URLSafeTimedSerializer("k", salt="app-session")
    codec = SessionCodec("k")
    assert codec.decode(raw.dumps({"userId": "u1", "role": "ADMIN"})) is None
    assert codec.decode(raw.dumps({"role": "LECTURER"})) is None
    assert codec.decode(raw.dumps(["u1", "LECTURER"])) is None


def test_session_from_payload_normalizes_name():
    assert session_from_payload({"userId": "u1", "role": "COORDINATOR", "name": ""}).name is None
    assert session_from_payload({"userId": "u1", "role": "COORDINATOR", "name": 5}).name is None
    assert session_from_payload({"userId": "u1", "role": "COORDINATOR"}) == UserSession("u1", "COORDINATOR")
