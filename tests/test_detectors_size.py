from __future__ import annotations

from helpers import analyze, smells_of

from smellscope.detectors.size import LongParameterList, TooManyMethods, TooManyStatements


def test_long_parameter_list_excludes_the_receiver() -> None:
    src = """
    def plot(x, y, color, label):
        pass

    class Chart:
        def add(self, x, y, color):
            pass

        @classmethod
        def build(cls, x, y, color):
            pass

        @staticmethod
        def parse(x, y, color, label):
            pass
    """
    warnings = smells_of(analyze(src, LongParameterList), "LongParameterList")

    assert [(w.context, w.message) for w in warnings] == [
        ("plot", "has 4 parameters"),
        ("Chart.parse", "has 4 parameters"),
    ]
    assert warnings[0].parameters["count"] == 4


def test_long_parameter_list_counts_variadic_and_keyword_only() -> None:
    src = """
    def send(to, *cc, subject, **headers):
        pass
    """
    (warning,) = smells_of(analyze(src, LongParameterList), "LongParameterList")
    assert warning.message == "has 4 parameters"

    relaxed = analyze(src, LongParameterList, config={"LongParameterList": {"max_params": 4}})
    assert relaxed.has_smells() is False


def test_too_many_statements() -> None:
    src = """
    def process(items):
        total = 0
        for item in items:
            if item:
                total += item
            else:
                log(item)
        report(total)
        return total

    def short():
        return 1
    """
    (warning,) = smells_of(analyze(src, TooManyStatements), "TooManyStatements")
    assert warning.context == "process"
    assert warning.message == "has approx 7 statements"
    assert warning.parameters["count"] == 7


def test_too_many_methods_threshold() -> None:
    src = """
    class Service:
        def start(self):
            pass

        def stop(self):
            pass

        @staticmethod
        def create():
            pass

        def _helper():
            pass
    """
    assert analyze(src, TooManyMethods).has_smells() is False

    session = analyze(src, TooManyMethods, config={"TooManyMethods": {"max_methods": 2}})
    (warning,) = smells_of(session, "TooManyMethods")
    assert warning.context == "Service"
    assert warning.message == "has at least 4 methods"
