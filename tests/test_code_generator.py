import re

import pytest

from core.exceptions import InternalError
from utils import code_generator

INVITE_PATTERN = re.compile(r"^[0-9A-F]{3}-[0-9A-F]{3}$")


def test_invite_code_format():
    for _ in range(200):
        assert INVITE_PATTERN.match(code_generator.generate_invite_code())


def test_registration_code_is_eight_digits():
    for _ in range(200):
        code = code_generator.generate_registration_code()
        assert len(code) == 8
        assert code.isdigit()


def test_generate_rejects_bad_arguments():
    with pytest.raises(ValueError):
        code_generator.generate("", 4)
    with pytest.raises(ValueError):
        code_generator.generate("AB", 0)


def test_generate_unique_stops_on_first_free_code():
    calls = []

    def factory():
        calls.append(1)
        return "ABC-123"

    assert code_generator.generate_unique(factory, lambda code: False) == "ABC-123"
    assert len(calls) == 1


def test_generate_unique_skips_taken_codes():
    candidates = iter(["AAA-AAA", "BBB-BBB", "CCC-CCC"])
    taken = {"AAA-AAA", "BBB-BBB"}

    code = code_generator.generate_unique(lambda: next(candidates), taken.__contains__)

    assert code == "CCC-CCC"


def test_generate_unique_is_bounded():
    with pytest.raises(InternalError):
        code_generator.generate_unique(
            code_generator.generate_invite_code, lambda code: True, max_attempts=5
        )
