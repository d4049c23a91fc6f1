"""Tests for case/receipt reference ids."""

import re

from recepcion.core.ids import make_reference_id


def test_reference_id_format():
    ref = make_reference_id("CEPA")
    assert re.fullmatch(r"CEPA-[0-9A-Z]+-[0-9A-F]{6}", ref)


def test_reference_ids_are_unique():
    assert len({make_reference_id() for _ in range(200)}) == 200
