import base64

import pytest

from moodvault.container import (
    FORMAT_VERSION,
    HEADER_LEN,
    frame,
    unframe,
    version_for_kdf,
)
from moodvault.errors import MalformedContainer

SALT = bytes(range(16))
NONCE = bytes(range(100, 112))
TAG = bytes(range(200, 216))


def test_frame_layout_is_version_salt_nonce_tag_ciphertext():
    blob = frame(SALT, NONCE, TAG, b"cipher")
    raw = base64.b64decode(blob)
    assert raw == bytes([FORMAT_VERSION]) + SALT + NONCE + TAG + b"cipher"


def test_unframe_splits_fields():
    c = unframe(frame(SALT, NONCE, TAG, b"cipher", version=0x03))
    assert (c.version, c.salt, c.nonce, c.tag, c.ciphertext) == (3, SALT, NONCE, TAG, b"cipher")
    assert c.kdf == "argon2id"
    assert c.aad == b"\x03" + SALT


def test_empty_ciphertext_is_valid():
    c = unframe(frame(SALT, NONCE, TAG, b""))
    assert c.ciphertext == b""


def test_unframe_ignores_surrounding_whitespace():
    blob = frame(SALT, NONCE, TAG, b"x")
    assert unframe("  " + blob + "\n").ciphertext == b"x"
    assert unframe((blob + "\n").encode()).ciphertext == b"x"


def test_unframe_accepts_line_wrapped_blob():
    blob = frame(SALT, NONCE, TAG, bytes(range(256)))
    wrapped = "\r\n".join(blob[i:i + 76] for i in range(0, len(blob), 76))
    assert "\n" in wrapped
    c = unframe(wrapped)
    assert (c.salt, c.nonce, c.tag, c.ciphertext) == (SALT, NONCE, TAG, bytes(range(256)))
    assert unframe(wrapped.encode("ascii")) == c


@pytest.mark.parametrize("blob", ["invalid_base64_data!@#", "abc", "Zm9vé"])
def test_unframe_rejects_non_base64(blob):
    with pytest.raises(MalformedContainer):
        unframe(blob)


@pytest.mark.parametrize("size", [0, 4, HEADER_LEN - 1])
def test_unframe_rejects_short_blobs(size):
    blob = base64.b64encode(b"\x01" * size).decode()
    with pytest.raises(MalformedContainer):
        unframe(blob)


def test_unframe_rejects_unknown_version():
    raw = b"\x7f" + SALT + NONCE + TAG + b"data"
    with pytest.raises(MalformedContainer):
        unframe(base64.b64encode(raw).decode())


def test_frame_rejects_wrong_field_lengths():
    with pytest.raises(ValueError):
        frame(SALT[:8], NONCE, TAG, b"")
    with pytest.raises(ValueError):
        frame(SALT, NONCE, TAG[:4], b"")
    with pytest.raises(ValueError):
        frame(SALT, NONCE, TAG, b"", version=0)


def test_version_for_kdf():
    assert version_for_kdf("pbkdf2") == FORMAT_VERSION
    assert version_for_kdf("scrypt") == 0x02
    with pytest.raises(ValueError):
        version_for_kdf("rot13")
