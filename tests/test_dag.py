import pytest

from plotseries.core.dag import DAG, Transform


class AddTransform(Transform):
    def __init__(self, input_keys, output_key, critical=True):
        super().__init__("add", input_keys, [output_key], critical=critical)

    def forward(self, inputs):
        return {self.output_keys[0]: sum(inputs[k] for k in self.input_keys)}


class FailingTransform(Transform):
    def __init__(self, critical):
        super().__init__("fail", ["a"], ["never"], critical=critical)

    def forward(self, inputs):
        raise RuntimeError("boom")


def test_forward_runs_in_dependency_order():
    # Given out of order on purpose: "e" needs "d" first
    dag = DAG([
        AddTransform(["a", "d"], "e"),
        AddTransform(["a", "b"], "d"),
    ])
    state = dag.forward({"a": 1, "b": 2})
    assert state["d"] == 3
    assert state["e"] == 4
    assert [t.output_keys[0] for t in dag.execution_order] == ["d", "e"]


def test_non_critical_failure_is_skipped():
    dag = DAG([FailingTransform(critical=False), AddTransform(["a"], "b")])
    state = dag.forward({"a": 5})
    assert "never" not in state
    assert state["b"] == 5


def test_critical_failure_propagates():
    dag = DAG([FailingTransform(critical=True)])
    with pytest.raises(RuntimeError):
        dag.forward({"a": 1})


def test_missing_input_on_critical_transform_raises():
    dag = DAG([AddTransform(["missing"], "out")])
    with pytest.raises(KeyError):
        dag.forward({})


def test_cycle_is_rejected():
    with pytest.raises(ValueError):
        DAG([AddTransform(["x"], "y"), AddTransform(["y"], "x")])
