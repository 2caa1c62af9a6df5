from datetime import timedelta

import jwt
import pytest

from conftest import T0
from live_auction.core.errors import UnauthenticatedError
from live_auction.core.security import (Identity, TokenCodec, hash_password,
                                        verify_password)

ALICE = Identity(user_id=7, username="alice")


def test_password_round_trip():
    hashed = hash_password("correct horse", rounds=4)
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_garbage_hash_never_verifies():
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_token_carries_identity():
    codec = TokenCodec(secret="s3cret")
    token = codec.issue(ALICE, T0)
    assert codec.verify(token, T0 + timedelta(minutes=59)) == ALICE


def test_token_expiry_follows_the_given_clock():
    codec = TokenCodec(secret="s3cret", expires_minutes=60)
    token = codec.issue(ALICE, T0)
    with pytest.raises(UnauthenticatedError, match="expired"):
        codec.verify(token, T0 + timedelta(minutes=60))


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token(token):
    with pytest.raises(UnauthenticatedError, match="required"):
        TokenCodec(secret="s3cret").verify(token, T0)


def test_token_signed_with_another_secret_is_refused():
    token = TokenCodec(secret="other").issue(ALICE, T0)
    with pytest.raises(UnauthenticatedError, match="Invalid"):
        TokenCodec(secret="s3cret").verify(token, T0)


def test_token_without_identity_claims_is_refused():
    token = jwt.encode({"sub": "7", "exp": T0 + timedelta(hours=1)}, "s3cret", algorithm="HS256")
    with pytest.raises(UnauthenticatedError, match="Invalid"):
        TokenCodec(secret="s3cret").verify(token, T0)
