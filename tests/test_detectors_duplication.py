from __future__ import annotations

from helpers import analyze, smells_of

from smellscope.detectors.duplication import DuplicateMethodBody

SOURCE = '''
class Pricing:
    def gross(self, x):
        """Gross price."""
        y = x + 1
        z = y * 2
        return z

    def net(self, x):
        y = x + 1
        z = y * 2
        return z

def standalone(x):
    y = x + 1
    z = y * 2
    return z

def short(x):
    return x

def short_again(x):
    return x
'''


def test_duplicate_bodies_are_grouped_once() -> None:
    warnings = smells_of(analyze(SOURCE, DuplicateMethodBody), "DuplicateMethodBody")

    (warning,) = warnings
    assert warning.context == "Pricing.gross"
    assert warning.message == "has the same body as Pricing.net, standalone"
    assert warning.parameters["count"] == 3
    assert warning.parameters["duplicates"] == ("Pricing.net", "standalone")
    assert len(warning.lines) == 3


def test_min_statements_is_configurable() -> None:
    session = analyze(SOURCE, DuplicateMethodBody, config={"DuplicateMethodBody": {"min_statements": 1}})
    messages = [w.message for w in smells_of(session, "DuplicateMethodBody")]
    assert messages == [
        "has the same body as Pricing.net, standalone",
        "has the same body as short_again",
    ]


def test_excluded_scopes_are_not_recorded() -> None:
    src = SOURCE.replace("    def net(self, x):", "    def net(self, x):  # smellscope: disable=DuplicateMethodBody")
    (warning,) = smells_of(analyze(src, DuplicateMethodBody), "DuplicateMethodBody")
    assert warning.parameters["duplicates"] == ("standalone",)


def test_different_bodies_are_not_duplicates() -> None:
    src = """
    def a(x):
        y = x + 1
        z = y * 2
        return z

    def b(x):
        y = x + 1
        z = y * 3
        return z
    """
    assert analyze(src, DuplicateMethodBody).has_smells() is False
