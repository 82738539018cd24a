import re
import uuid

import pytest

from attendify.backend.tools.qr_token import generate_qr_token, MIN_TOKEN_BYTES


class TestGenerateQrToken:

    def test_token_format(self):
        session_id = uuid.uuid4()

        token = generate_qr_token(session_id)

        hint, secret = token.split(".", 1)
        assert hint == session_id.hex[:8]
        assert re.fullmatch(r"[A-Za-z0-9_-]+", secret)
        # 24 bayt -> 32 karakter base64url
        assert len(secret) == 32

    def test_custom_length(self):
        token = generate_qr_token(uuid.uuid4(), nbytes=32)

        assert len(token.split(".", 1)[1]) == 43

    def test_rejects_short_tokens(self):
        with pytest.raises(ValueError, match=str(MIN_TOKEN_BYTES)):
            generate_qr_token(uuid.uuid4(), nbytes=8)

    def test_ten_thousand_tokens_do_not_collide(self):
        tokens = {generate_qr_token(uuid.uuid4()) for _ in range(10_000)}

        assert len(tokens) == 10_000
