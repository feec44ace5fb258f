import pytest
from onnx import AttributeProto, TensorProto, helper

from onnx_extractor import (
    AttributeType,
    AttributeValue,
    DataType,
    InvalidModelError,
    MissingFieldError,
    OnnxOperation,
    UnsupportedError,
    Utf8Error,
)
from onnx_extractor.core.attribute import parse_attribute


def test_scalar_attributes():
    assert parse_attribute(helper.make_attribute("i", 7)) == AttributeValue(AttributeType.INT, 7)
    assert parse_attribute(helper.make_attribute("f", 0.5)).as_float() == 0.5
    assert parse_attribute(helper.make_attribute("s", "same")).as_string() == "same"


def test_array_attributes():
    assert parse_attribute(helper.make_attribute("ints", [1, 2, 3])).as_ints() == [1, 2, 3]
    assert parse_attribute(helper.make_attribute("floats", [0.25, 1.5])).as_floats() == [0.25, 1.5]
    assert parse_attribute(helper.make_attribute("strings", ["a", "bc"])).as_strings() == ["a", "bc"]


def test_accessors_return_none_on_kind_mismatch():
    value = parse_attribute(helper.make_attribute("i", 7))
    assert value.as_float() is None
    assert value.as_string() is None
    assert value.as_ints() is None
    assert value.as_tensor() is None


def test_tensor_attribute():
    tensor = helper.make_tensor("value", TensorProto.INT64, [2], [4, 5])
    value = parse_attribute(helper.make_attribute("value", tensor))

    assert value.kind is AttributeType.TENSOR
    inner = value.as_tensor()
    assert inner.data_type is DataType.INT64
    assert inner.copy_data_as("<i8").tolist() == [4, 5]


def test_tensor_attribute_with_external_data_is_rejected():
    tensor = TensorProto(name="value", data_type=TensorProto.FLOAT, dims=[1])
    entry = tensor.external_data.add()
    entry.key = "location"
    entry.value = "weights.bin"

    with pytest.raises(InvalidModelError, match="external data"):
        parse_attribute(helper.make_attribute("value", tensor))


def test_tensor_attribute_without_tensor():
    attr = AttributeProto(name="value", type=AttributeProto.TENSOR)
    with pytest.raises(MissingFieldError):
        parse_attribute(attr)


@pytest.mark.parametrize("attr_type", [
    AttributeProto.UNDEFINED,
    AttributeProto.GRAPH,
    AttributeProto.TENSORS,
    AttributeProto.SPARSE_TENSOR,
    AttributeProto.TYPE_PROTO,
])
def test_unsupported_attribute_types_name_the_tag(attr_type):
    attr = AttributeProto(name="x", type=attr_type)
    with pytest.raises(UnsupportedError) as excinfo:
        parse_attribute(attr)
    assert str(int(attr_type)) in str(excinfo.value)


def test_invalid_utf8_string():
    attr = AttributeProto(name="s", type=AttributeProto.STRING, s=b"\xff\xfe")
    with pytest.raises(Utf8Error):
        parse_attribute(attr)


def test_invalid_utf8_in_string_list():
    attr = AttributeProto(name="s", type=AttributeProto.STRINGS, strings=[b"ok", b"\xc3"])
    with pytest.raises(Utf8Error, match="'s'"):
        parse_attribute(attr)


def test_operation_from_node():
    node = helper.make_node(
        "Conv", ["x", "w", ""], ["y"], name="conv1",
        kernel_shape=[3, 3], alpha=0.5, auto_pad="SAME_UPPER",
    )
    op = OnnxOperation.from_onnx(node)

    assert op.name == "conv1"
    assert op.op_type == "Conv"
    assert op.is_op_type("Conv")
    assert op.inputs == ["x", "w", ""]
    assert op.outputs == ["y"]
    assert op.input_count() == 3
    assert op.output_count() == 1
    assert op.get_ints_attribute("kernel_shape") == [3, 3]
    assert op.get_float_attribute("alpha") == 0.5
    assert op.get_string_attribute("auto_pad") == "SAME_UPPER"
    assert op.get_int_attribute("alpha") is None
    assert op.get_int_attribute("missing") is None
    assert op.has_attribute("alpha")
    assert sorted(op.attribute_names()) == ["alpha", "auto_pad", "kernel_shape"]


def test_operation_domain_and_tensor_attribute():
    node = helper.make_node(
        "Constant", [], ["c"], domain="com.example",
        value=helper.make_tensor("v", TensorProto.FLOAT, [1], [2.0]),
    )
    op = OnnxOperation.from_onnx(node)

    assert op.domain == "com.example"
    assert op.get_tensor_attribute("value").copy_data_as("<f4").tolist() == [2.0]
    assert op.get_strings_attribute("value") is None


def test_unnamed_attributes_are_dropped():
    node = helper.make_node("Relu", ["x"], ["y"])
    node.attribute.extend([AttributeProto(name="", type=AttributeProto.INT, i=1)])
    assert OnnxOperation.from_onnx(node).attributes == {}


def test_bad_attribute_fails_node():
    node = helper.make_node("Relu", ["x"], ["y"])
    node.attribute.extend([AttributeProto(name="g", type=AttributeProto.GRAPHS)])
    with pytest.raises(UnsupportedError, match="attribute type: 10"):
        OnnxOperation.from_onnx(node)


def test_repr():
    op = OnnxOperation("n", "Add", ["a", "b"], ["c"])
    assert repr(op) == "OnnxOperation(name='n', op_type='Add', inputs=2, outputs=1)"
