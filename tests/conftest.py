import pytest
from onnx import TensorProto, helper


@pytest.fixture
def identity_model():
    """One float32 initializer W of 16 zero bytes feeding an Identity node N."""
    w = helper.make_tensor("W", TensorProto.FLOAT, [2, 2], bytes(16), raw=True)
    node = helper.make_node("Identity", ["W"], ["Y"], name="N")
    graph = helper.make_graph(
        [node],
        "identity_graph",
        inputs=[],
        outputs=[helper.make_tensor_value_info("Y", TensorProto.FLOAT, [2, 2])],
        initializer=[w],
    )
    return helper.make_model(graph, producer_name="pytest")


@pytest.fixture
def mlp_model():
    """Input x through MatMul/Add/Relu with two weights, declared partly out of order."""
    w = helper.make_tensor("w", TensorProto.FLOAT, [4, 2], [0.5] * 8)
    b = helper.make_tensor("b", TensorProto.FLOAT, [2], [1.0, -1.0])
    nodes = [
        helper.make_node("Relu", ["h"], ["y"], name="relu"),
        helper.make_node("MatMul", ["x", "w"], ["mm"], name="matmul"),
        helper.make_node("Add", ["mm", "b"], ["h"], name="add"),
    ]
    graph = helper.make_graph(
        nodes,
        "mlp",
        inputs=[
            helper.make_tensor_value_info("x", TensorProto.FLOAT, ["batch", 4]),
            helper.make_tensor_value_info("w", TensorProto.FLOAT, [4, 2]),
        ],
        outputs=[helper.make_tensor_value_info("y", TensorProto.FLOAT, ["batch", 2])],
        initializer=[w, b],
        value_info=[helper.make_tensor_value_info("mm", TensorProto.FLOAT, ["batch", 2])],
    )
    model = helper.make_model(graph, producer_name="pytest", producer_version="1.2")
    model.model_version = 3
    return model


@pytest.fixture
def weights_file(tmp_path):
    """A 100-byte external data file holding bytes 0..99."""
    path = tmp_path / "weights.bin"
    path.write_bytes(bytes(range(100)))
    return path
