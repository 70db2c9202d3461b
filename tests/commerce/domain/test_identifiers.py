import re

import pytest
from commerce.shared.identifiers import (
    generate_order_number,
    generate_recovery_code,
    generate_tracking_token,
    to_base36,
)


class TestBase36:
    @pytest.mark.parametrize("value, expected", [(0, "0"), (35, "Z"), (36, "10"), (1295, "ZZ")])
    def test_encoding(self, value, expected):
        assert to_base36(value) == expected

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base36(-1)


class TestOrderNumber:
    def test_format(self):
        number = generate_order_number(now_ms=1_700_000_000_000)
        assert re.fullmatch(r"FX-[0-9A-Z]+-[0-9A-Z]{3}", number)
        assert number.startswith(f"FX-{to_base36(1_700_000_000_000)}-")

    def test_uses_current_time_by_default(self):
        assert re.fullmatch(r"FX-[0-9A-Z]+-[0-9A-Z]{3}", generate_order_number())


class TestTrackingToken:
    def test_is_64_hex_chars(self):
        assert re.fullmatch(r"[0-9a-f]{64}", generate_tracking_token())

    def test_tokens_do_not_collide(self):
        tokens = {generate_tracking_token() for _ in range(10_000)}
        assert len(tokens) == 10_000


class TestRecoveryCode:
    def test_format_avoids_ambiguous_characters(self):
        for _ in range(200):
            code = generate_recovery_code()
            assert re.fullmatch(r"RECOVER-[A-HJ-NP-Z2-9]{6}", code)
