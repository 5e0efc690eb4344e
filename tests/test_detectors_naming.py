from __future__ import annotations

from helpers import analyze, smells_of

from smellscope.detectors.naming import IrresponsibleModule, UncommunicativeMethodName, UncommunicativeModuleName


def test_uncommunicative_method_names() -> None:
    src = """
    def x():
        pass

    def parse2():
        pass

    def parseData():
        pass

    def parse_data():
        pass
    """
    warnings = smells_of(analyze(src, UncommunicativeMethodName), "UncommunicativeMethodName")
    assert [w.message for w in warnings] == [
        "has the name 'x'",
        "has the name 'parse2'",
        "has the name 'parseData'",
    ]


def test_uncommunicative_method_name_accept_list() -> None:
    session = analyze(
        "def x():\n    pass\n",
        UncommunicativeMethodName,
        config={"UncommunicativeMethodName": {"accept": ["x"]}},
    )
    assert session.has_smells() is False


def test_redefined_names_report_the_declared_name() -> None:
    src = """
    class Shape:
        \"\"\"A shape.\"\"\"

        @property
        def v2(self):
            return self._v

        @v2.setter
        def v2(self, value):
            self._v = value
    """
    warnings = smells_of(analyze(src, UncommunicativeMethodName), "UncommunicativeMethodName")
    assert [(w.context, w.parameters["name"]) for w in warnings] == [("Shape.v2", "v2"), ("Shape.v2#2", "v2")]


def test_uncommunicative_class_names() -> None:
    src = """
    class A:
        pass

    class Parser1:
        pass

    class Parser:
        pass
    """
    warnings = smells_of(analyze(src, UncommunicativeModuleName), "UncommunicativeModuleName")
    assert [w.context for w in warnings] == ["A", "Parser1"]


def test_irresponsible_module() -> None:
    src = """
    class Documented:
        \"\"\"Keeps track of documented things.\"\"\"

    class Blank:
        \"\"\"   \"\"\"

    class Bare:
        pass
    """
    warnings = smells_of(analyze(src, IrresponsibleModule), "IrresponsibleModule")
    assert [(w.context, w.message) for w in warnings] == [
        ("Blank", "has no descriptive comment"),
        ("Bare", "has no descriptive comment"),
    ]
