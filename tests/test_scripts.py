from pathlib import Path

import pytest

SCRIPTS = sorted((Path(__file__).resolve().parent.parent / "scripts").glob("*.py"))


@pytest.mark.parametrize("script", SCRIPTS, ids=lambda p: p.name)
def test_scripts_use_default_event_loop(script):
    # Event loop policies are deprecated since Python 3.14
    source = script.read_text()

    assert "set_event_loop_policy" not in source
    assert "EventLoopPolicy" not in source
