"""Tests for media key expansion and blob decryption."""

import base64

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from media_decrypt.core.exceptions import (
    IntegrityCheckFailed,
    InvalidKeyLength,
    MalformedBlob,
    MediaIntegrityError,
    PaddingError,
    UnknownTypeTag,
    ValidationError,
)
from media_decrypt.crypto import (
    ExpandedMediaKey,
    MediaType,
    compute_mac,
    decode_media_key,
    decrypt_media,
    encrypt_media,
    expand_media_key,
    resolve_media_type,
)

ZERO_KEY = bytes(32)

ZERO_KEY_AUDIO_EXPANSION = bytes.fromhex(
    "7cd5a674bce4998680c29f06c25bffbaba87493350a24b272d540720a6e9de79"
    "4c167956b82a5ff84c3634c328939b8fa7a198e1711194001df31bd566ddbb8d"
    "0d8164710351bb913d73a8daed82ea700909a79f81754ed5525962304942e95f"
    "f12839c5e61d86772340891094465ee9"
)

ZERO_KEY_IMAGE_EXPANSION = bytes.fromhex(
    "a056b2e5cd64d4545d08f2503a042e759fd66b8025ea8b52777ab7efc2e748eb"
    "97639b1c96ecb902a5e235d99179a6f97d206170eaff865940556ddd27f8770a"
    "28a46cc1281865e5c586a74bf60bc08ed678ecb96a45d95f502942b57e4ca8ab"
    "85e4cc41ee77b9c7a93657572b53838a"
)


def _flip_bit(data: bytes, index: int, bit: int = 0) -> bytes:
    mutable = bytearray(data)
    mutable[index] ^= 1 << bit
    return bytes(mutable)


class TestMediaType:
    """Tests for MediaType parsing."""

    def test_info_strings(self):
        assert MediaType.AUDIO.info == b"WhatsApp Audio Keys"
        assert MediaType.IMAGE.info == b"WhatsApp Image Keys"
        assert MediaType.VIDEO.info == b"WhatsApp Video Keys"
        assert MediaType.DOCUMENT.info == b"WhatsApp Document Keys"

    def test_parse_accepts_info_string_and_name(self):
        assert MediaType.parse("WhatsApp Video Keys") is MediaType.VIDEO
        assert MediaType.parse("video") is MediaType.VIDEO
        assert MediaType.parse("DOCUMENT") is MediaType.DOCUMENT
        assert MediaType.parse(MediaType.AUDIO) is MediaType.AUDIO

    def test_parse_unknown_tag(self):
        with pytest.raises(UnknownTypeTag) as exc_info:
            MediaType.parse("WhatsApp Sticker Keys")
        assert exc_info.value.type_tag == "WhatsApp Sticker Keys"
        assert exc_info.value.field == "messageType"


class TestResolveMediaType:
    """Tests for loose type hint normalization."""

    @pytest.mark.parametrize(
        "hint,expected",
        [
            ("audioMessage", MediaType.AUDIO),
            ("pttMessage", MediaType.AUDIO),
            ("imageMessage", MediaType.IMAGE),
            ("stickerMessage", MediaType.IMAGE),
            ("videoMessage", MediaType.VIDEO),
            ("documentMessage", MediaType.DOCUMENT),
            ("WhatsApp Audio Keys", MediaType.AUDIO),
            ("  image ", MediaType.IMAGE),
        ],
    )
    def test_hints(self, hint, expected):
        assert resolve_media_type(hint) is expected

    def test_hint_wins_over_mime(self):
        assert resolve_media_type("audioMessage", "image/jpeg") is MediaType.AUDIO

    @pytest.mark.parametrize(
        "mime_type,expected",
        [
            ("audio/ogg; codecs=opus", MediaType.AUDIO),
            ("image/jpeg", MediaType.IMAGE),
            ("video/mp4", MediaType.VIDEO),
            ("application/pdf", MediaType.DOCUMENT),
            (None, MediaType.DOCUMENT),
        ],
    )
    def test_mime_fallback(self, mime_type, expected):
        assert resolve_media_type(None, mime_type) is expected

    def test_unknown_hint_raises(self):
        with pytest.raises(UnknownTypeTag):
            resolve_media_type("locationMessage")


class TestDecodeMediaKey:
    """Tests for base64 media key decoding."""

    def test_decodes_valid_key(self):
        encoded = base64.b64encode(ZERO_KEY).decode("ascii")
        assert decode_media_key(encoded) == ZERO_KEY

    def test_empty_key(self):
        with pytest.raises(ValidationError) as exc_info:
            decode_media_key("")
        assert exc_info.value.field == "mediaKey"

    def test_invalid_base64(self):
        with pytest.raises(ValidationError):
            decode_media_key("not base64!")


class TestExpandMediaKey:
    """Tests for HKDF key expansion."""

    def test_zero_key_audio_vector(self):
        expanded = expand_media_key(ZERO_KEY, MediaType.AUDIO)
        assert expanded.material == ZERO_KEY_AUDIO_EXPANSION

    def test_zero_key_image_vector(self):
        expanded = expand_media_key(ZERO_KEY, "WhatsApp Image Keys")
        assert expanded.material == ZERO_KEY_IMAGE_EXPANSION

    def test_slices(self):
        expanded = expand_media_key(ZERO_KEY, MediaType.AUDIO)
        assert expanded.iv == ZERO_KEY_AUDIO_EXPANSION[0:16]
        assert expanded.cipher_key == ZERO_KEY_AUDIO_EXPANSION[16:48]
        assert expanded.mac_key == ZERO_KEY_AUDIO_EXPANSION[48:80]
        assert expanded.ref_key == ZERO_KEY_AUDIO_EXPANSION[80:112]
        assert len(expanded.iv) == 16
        assert len(expanded.cipher_key) == 32

    def test_deterministic(self):
        key = bytes(range(32))
        first = expand_media_key(key, MediaType.VIDEO)
        second = expand_media_key(key, MediaType.VIDEO)
        assert first.material == second.material

    def test_type_changes_output(self):
        key = bytes(range(32))
        assert (
            expand_media_key(key, MediaType.AUDIO).material
            != expand_media_key(key, MediaType.DOCUMENT).material
        )

    @pytest.mark.parametrize("length", [0, 16, 31, 33, 64])
    def test_invalid_key_length(self, length):
        with pytest.raises(InvalidKeyLength) as exc_info:
            expand_media_key(bytes(length), MediaType.AUDIO)
        assert exc_info.value.actual == length
        assert exc_info.value.expected == 32

    def test_unknown_type_tag(self):
        with pytest.raises(UnknownTypeTag):
            expand_media_key(ZERO_KEY, "WhatsApp Gif Keys")

    def test_repr_redacts_material(self):
        expanded = expand_media_key(ZERO_KEY, MediaType.AUDIO)
        assert ZERO_KEY_AUDIO_EXPANSION.hex() not in repr(expanded)
        assert "redacted" in repr(expanded)

    def test_rejects_wrong_material_length(self):
        with pytest.raises(ValueError):
            ExpandedMediaKey(bytes(100))


class TestDecryptMedia:
    """Tests for blob verification and decryption."""

    @pytest.fixture
    def image_key(self, sample_media_key: str) -> ExpandedMediaKey:
        return expand_media_key(decode_media_key(sample_media_key), MediaType.IMAGE)

    def test_pinned_vector(self, image_key, sample_blob, sample_plaintext):
        assert decrypt_media(sample_blob, image_key) == sample_plaintext

    def test_encrypt_reproduces_pinned_blob(self, image_key, sample_blob, sample_plaintext):
        assert encrypt_media(sample_plaintext, image_key) == sample_blob

    @pytest.mark.parametrize(
        "plaintext",
        [b"x", b"a" * 15, b"b" * 16, b"c" * 17, bytes(range(256)) * 40],
    )
    def test_round_trip(self, plaintext):
        key = expand_media_key(bytes(range(32, 64)), MediaType.DOCUMENT)
        blob = encrypt_media(plaintext, key)
        assert len(blob) % 16 == 10
        assert decrypt_media(blob, key) == plaintext

    def test_ciphertext_bit_flip(self, image_key, sample_blob):
        for index in (0, 15, 16, len(sample_blob) - 11):
            with pytest.raises(IntegrityCheckFailed):
                decrypt_media(_flip_bit(sample_blob, index), image_key)

    def test_tag_bit_flip(self, image_key, sample_blob):
        for index in range(len(sample_blob) - 10, len(sample_blob)):
            with pytest.raises(IntegrityCheckFailed):
                decrypt_media(_flip_bit(sample_blob, index, bit=7), image_key)

    def test_wrong_media_type(self, sample_media_key, sample_blob):
        audio_key = expand_media_key(decode_media_key(sample_media_key), MediaType.AUDIO)
        with pytest.raises(IntegrityCheckFailed):
            decrypt_media(sample_blob, audio_key)

    def test_wrong_key(self, sample_blob):
        other = expand_media_key(ZERO_KEY, MediaType.IMAGE)
        with pytest.raises(MediaIntegrityError):
            decrypt_media(sample_blob, other)

    @pytest.mark.parametrize("length", [0, 1, 9])
    def test_blob_shorter_than_mac(self, image_key, length):
        with pytest.raises(MalformedBlob) as exc_info:
            decrypt_media(bytes(length), image_key)
        assert exc_info.value.length == length

    def test_unaligned_ciphertext_with_valid_mac(self, image_key):
        ciphertext = bytes(15)
        blob = ciphertext + compute_mac(image_key, ciphertext)
        with pytest.raises(MalformedBlob):
            decrypt_media(blob, image_key)

    def test_empty_ciphertext_with_valid_mac(self, image_key):
        blob = compute_mac(image_key, b"")
        with pytest.raises(MalformedBlob):
            decrypt_media(blob, image_key)

    def test_bad_padding(self, image_key):
        # A zero block encrypted without padding decrypts to an invalid pad byte
        encryptor = Cipher(
            algorithms.AES(image_key.cipher_key), modes.CBC(image_key.iv)
        ).encryptor()
        ciphertext = encryptor.update(bytes(16)) + encryptor.finalize()
        blob = ciphertext + compute_mac(image_key, ciphertext)
        with pytest.raises(PaddingError):
            decrypt_media(blob, image_key)

    def test_integrity_errors_share_base(self):
        assert issubclass(IntegrityCheckFailed, MediaIntegrityError)
        assert issubclass(PaddingError, MediaIntegrityError)
        assert issubclass(MalformedBlob, MediaIntegrityError)
