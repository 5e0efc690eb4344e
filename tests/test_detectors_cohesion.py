from __future__ import annotations

from helpers import analyze, contexts_by_name, smells_of

from smellscope.detectors.cohesion import DataClump, UtilityFunction

GREETER = """
class Greeter:
    def empty(self):
        pass

    def uses_field(self, other):
        other.prepare()
        other.finish()
        return self.name

    def helper(self, name):
        return format_name(name).upper()

    def quiet(self, value):
        return value

    def save(self):
        super().save()
        audit()

    @staticmethod
    def build(name):
        return make(name)
"""


def test_utility_function_flags_only_receiver_free_methods_with_calls() -> None:
    session = analyze(GREETER, UtilityFunction)
    warnings = smells_of(session, "UtilityFunction")

    assert [w.context for w in warnings] == ["Greeter.helper"]
    (warning,) = warnings
    assert warning.message == "doesn't depend on instance state"
    assert dict(warning.parameters) == {"name": "Greeter.helper"}
    assert warning.lines == (11,)


def test_utility_function_examine_directly_uses_defaults() -> None:
    contexts = contexts_by_name(GREETER)
    detector = UtilityFunction()

    assert detector.examine(contexts["Greeter.empty"]) == []
    assert detector.examine(contexts["Greeter.uses_field"]) == []
    assert detector.examine(contexts["Greeter.quiet"]) == []
    assert detector.examine(contexts["Greeter.build"]) == []
    assert detector.examine(contexts["Greeter"]) == []
    assert len(detector.examine(contexts["Greeter.helper"])) == 1


def test_utility_function_threshold_is_configurable() -> None:
    session = analyze(GREETER, UtilityFunction, config={"UtilityFunction": {"max_helper_calls": 2}})
    assert smells_of(session, "UtilityFunction") == []

    contexts = contexts_by_name(GREETER)
    assert UtilityFunction().examine(contexts["Greeter.helper"], {"max_helper_calls": 2}) == []


def test_utility_function_ignores_receiver_use_inside_closures() -> None:
    src = """
    class Handler:
        def outer(self):
            def inner():
                return self.value
            return inner()
    """
    session = analyze(src, UtilityFunction)
    assert [w.context for w in smells_of(session, "UtilityFunction")] == ["Handler.outer"]


def test_utility_function_respects_disabled_flag() -> None:
    session = analyze(GREETER, UtilityFunction, config={"UtilityFunction": {"enabled": False}})
    assert session.has_smells() is False


REPORT = """
class Report:
    def render(self, start, end, fmt):
        pass

    def count(self, start, end):
        pass

    def slice(self, start, end, limit):
        pass

    def title(self, name):
        pass
"""


def test_data_clump_reports_parameters_shared_by_many_methods() -> None:
    session = analyze(REPORT, DataClump)
    (warning,) = smells_of(session, "DataClump")

    assert warning.context == "Report"
    assert warning.message == "takes parameters [end, start] to 3 methods"
    assert warning.parameters["parameters"] == ("end", "start")
    assert warning.parameters["methods"] == ("Report.render", "Report.count", "Report.slice")
    assert warning.lines == (3, 6, 9)


def test_data_clump_needs_more_than_max_copies() -> None:
    session = analyze(REPORT, DataClump, config={"DataClump": {"max_copies": 3}})
    assert smells_of(session, "DataClump") == []

    two_methods = """
    class Pair:
        def a(self, x, y):
            pass

        def b(self, x, y):
            pass
    """
    assert smells_of(analyze(two_methods, DataClump), "DataClump") == []


def test_data_clump_reports_the_whole_shared_group() -> None:
    src = """
    class Geometry:
        def move(self, x, y, z):
            pass

        def scale(self, x, y, z):
            pass

        def rotate(self, x, y, z):
            pass
    """
    warnings = smells_of(analyze(src, DataClump), "DataClump")
    assert [w.parameters["parameters"] for w in warnings] == [("x", "y", "z")]
