import numpy as np
import pytest

from backpropnet.core import activations
from backpropnet.core.activations import ActivationKind
from backpropnet.core.layers import WeightLayer
from backpropnet.core.network import HiddenLayerSpec, Network, NetworkSettings, construct
from backpropnet.errors import (
    ConfigurationError,
    DimensionError,
    NetworkError,
    UnsupportedActivationError,
)


def _settings(**overrides):
    base = dict(
        input_size=4,
        output_size=3,
        learning_rate=0.1,
        hidden_layers=(HiddenLayerSpec(5, ActivationKind.LEAKY_RELU),),
    )
    base.update(overrides)
    return NetworkSettings(**base)


def _fixed_network(learning_rate=0.5):
    hidden = WeightLayer(
        2, 2, ActivationKind.SIGMOID, np.array([[0.1, -0.2], [0.3, 0.4]])
    )
    output = WeightLayer(
        2, 2, ActivationKind.SOFTMAX, np.array([[0.5, -0.6], [-0.7, 0.8]])
    )
    return Network(input_size=2, output_size=2, learning_rate=learning_rate, layers=[hidden, output])


def test_activation_parse_accepts_codes_and_names():
    assert ActivationKind.parse(3) is ActivationKind.LEAKY_RELU
    assert ActivationKind.parse(np.int64(4)) is ActivationKind.SOFTMAX
    assert ActivationKind.parse("Leaky-ReLU") is ActivationKind.LEAKY_RELU
    assert ActivationKind.parse("lrelu") is ActivationKind.LEAKY_RELU
    assert ActivationKind.parse(" tanh ") is ActivationKind.TANH
    with pytest.raises(UnsupportedActivationError):
        ActivationKind.parse(9)
    with pytest.raises(UnsupportedActivationError):
        ActivationKind.parse("gelu")
    with pytest.raises(UnsupportedActivationError):
        ActivationKind.parse(True)


def test_registry_lists_all_kinds():
    assert list(activations.REGISTRY.names()) == [
        "sigmoid",
        "tanh",
        "relu",
        "leaky_relu",
        "softmax",
    ]
    assert activations.resolve("relu").name == "relu"


def test_forward_transforms_are_in_place():
    values = np.array([-2.0, 0.0, 3.0])
    activations.resolve(ActivationKind.SIGMOID).forward(values)
    np.testing.assert_allclose(values, 1.0 / (1.0 + np.exp([2.0, 0.0, -3.0])))

    values = np.array([-2.0, 0.0, 3.0])
    activations.relu(values)
    np.testing.assert_array_equal(values, [0.0, 0.0, 3.0])

    values = np.array([-2.0, 0.5, 3.0])
    activations.leaky_relu(values)
    np.testing.assert_allclose(values, [-0.02, 0.5, 3.0])

    values = np.array([-1.0, 0.0, 1.0])
    activations.tanh(values)
    np.testing.assert_allclose(values, np.tanh([-1.0, 0.0, 1.0]))


def test_sigmoid_saturates_without_warnings():
    values = np.array([-1000.0, 1000.0])
    with np.errstate(invalid="raise", divide="raise"):
        activations.sigmoid(values)
    np.testing.assert_allclose(values, [0.0, 1.0])


def test_softmax_is_stable_and_normalised():
    values = np.array([1000.0, 1001.0, 1002.0])
    activations.softmax(values)
    assert np.all(np.isfinite(values))
    assert abs(values.sum() - 1.0) < 1e-9
    assert (values >= 0).all()
    assert np.argmax(values) == 2


def test_derivatives_use_activated_values():
    a = np.array([0.25, 0.5])
    np.testing.assert_allclose(activations.sigmoid_deriv(a), a * (1 - a))
    np.testing.assert_allclose(activations.softmax_deriv(a), a * (1 - a))
    np.testing.assert_allclose(activations.tanh_deriv(a), 1 - a * a)
    np.testing.assert_array_equal(activations.relu_deriv(np.array([-1.0, 2.0])), [0.0, 1.0])
    np.testing.assert_array_equal(
        activations.leaky_relu_deriv(np.array([-1.0, 2.0])), [0.01, 1.0]
    )


def test_weight_layer_rejects_wrong_shape():
    with pytest.raises(DimensionError):
        WeightLayer(3, 2, ActivationKind.SIGMOID, np.zeros((3, 2)))


def test_construct_dimensions_and_output_activation():
    network = construct(_settings(), rng=np.random.default_rng(0))
    assert network.dims == [4, 5, 3]
    assert [layer.activation for layer in network.layers] == [
        ActivationKind.LEAKY_RELU,
        ActivationKind.SOFTMAX,
    ]
    assert network.layers[0].matrix.shape == (5, 4)
    assert network.layers[1].matrix.shape == (3, 5)
    assert network.parameter_count() == 5 * 4 + 3 * 5


def test_construct_is_reproducible_with_seeded_rng():
    first = construct(_settings(), rng=np.random.default_rng(42))
    second = construct(_settings(), rng=np.random.default_rng(42))
    for a, b in zip(first.layers, second.layers):
        np.testing.assert_array_equal(a.matrix, b.matrix)


@pytest.mark.parametrize(
    "overrides",
    [
        {"input_size": 0},
        {"output_size": 0},
        {"learning_rate": 0.0},
        {"learning_rate": 1e-7},
        {"learning_rate": 101.0},
        {"hidden_layers": ()},
        {"hidden_layers": (HiddenLayerSpec(0),)},
    ],
)
def test_construct_rejects_invalid_settings(overrides):
    with pytest.raises(ConfigurationError):
        construct(_settings(**overrides), rng=np.random.default_rng(0))


def test_settings_from_mapping():
    settings = NetworkSettings.from_mapping(
        {
            "input_size": 4,
            "output_size": 3,
            "learning_rate": 0.01,
            "activation": "tanh",
            "hidden": [8, {"size": 6, "activation": "relu"}],
        }
    )
    assert settings.hidden_layers == (
        HiddenLayerSpec(8, ActivationKind.TANH),
        HiddenLayerSpec(6, ActivationKind.RELU),
    )


def test_settings_from_mapping_wraps_errors():
    with pytest.raises(ConfigurationError):
        NetworkSettings.from_mapping({"input_size": 4, "learning_rate": 0.1})
    with pytest.raises(ConfigurationError):
        NetworkSettings.from_mapping(
            {"input_size": 4, "output_size": 2, "learning_rate": 0.1, "hidden": [{"size": 3, "activation": "swish"}]}
        )


def test_network_requires_softmax_output():
    layer = WeightLayer(2, 2, ActivationKind.SIGMOID, np.eye(2))
    with pytest.raises(ConfigurationError):
        Network(input_size=2, output_size=2, learning_rate=0.1, layers=[layer])


def test_network_requires_chained_layers():
    first = WeightLayer(2, 3, ActivationKind.SIGMOID, np.zeros((3, 2)))
    second = WeightLayer(4, 2, ActivationKind.SOFTMAX, np.zeros((2, 4)))
    with pytest.raises(ConfigurationError):
        Network(input_size=2, output_size=2, learning_rate=0.1, layers=[first, second])


def test_feed_forward_fixed_weights():
    network = _fixed_network()
    inputs = np.array([1.0, 2.0])

    hidden = 1.0 / (1.0 + np.exp(-np.array([0.1 - 0.4, 0.3 + 0.8])))
    logits = np.array([[0.5, -0.6], [-0.7, 0.8]]) @ hidden
    expected = np.exp(logits - logits.max())
    expected /= expected.sum()

    output = network.feed_forward(inputs)
    np.testing.assert_allclose(output, expected)
    assert abs(output.sum() - 1.0) < 1e-9
    assert (output >= 0).all()
    np.testing.assert_array_equal(network.feed_forward(inputs), output)
    assert network.predict(inputs) == int(np.argmax(expected))


def test_feed_forward_rejects_wrong_length():
    network = _fixed_network()
    with pytest.raises(DimensionError):
        network.feed_forward(np.ones(3))
    with pytest.raises(NetworkError):
        network.feed_forward(np.ones((2, 1)))


def test_train_step_matches_manual_update():
    network = _fixed_network(learning_rate=0.5)
    w0 = network.layers[0].matrix.copy()
    w1 = network.layers[1].matrix.copy()
    x = np.array([1.0, 2.0])
    target = np.array([0.99, 0.01])

    h = 1.0 / (1.0 + np.exp(-(w0 @ x)))
    z = w1 @ h
    out = np.exp(z - z.max())
    out /= out.sum()
    err_out = target - out
    adj_out = err_out * out * (1 - out)
    err_hidden = w1.T @ err_out
    adj_hidden = err_hidden * h * (1 - h)
    expected_w1 = w1 + 0.5 * np.outer(adj_out, h)
    expected_w0 = w0 + 0.5 * np.outer(adj_hidden, x)

    context = network.new_context()
    network.train(x, target, context)

    np.testing.assert_allclose(network.layers[1].matrix, expected_w1)
    np.testing.assert_allclose(network.layers[0].matrix, expected_w0)
    np.testing.assert_allclose(context.errors[-1], err_out)
    assert context.squared_error() == pytest.approx(float(err_out @ err_out))


def test_chain_derivatives_propagates_adjustments():
    network = _fixed_network(learning_rate=0.5)
    w0 = network.layers[0].matrix.copy()
    w1 = network.layers[1].matrix.copy()
    x = np.array([1.0, 2.0])
    target = np.array([0.99, 0.01])

    h = 1.0 / (1.0 + np.exp(-(w0 @ x)))
    z = w1 @ h
    out = np.exp(z - z.max())
    out /= out.sum()
    adj_out = (target - out) * out * (1 - out)
    err_hidden = w1.T @ adj_out
    expected_w0 = w0 + 0.5 * np.outer(err_hidden * h * (1 - h), x)

    context = network.new_context(chain_derivatives=True)
    network.train(x, target, context)
    np.testing.assert_allclose(network.layers[0].matrix, expected_w0)


def test_train_at_fixed_point_leaves_weights_unchanged():
    network = _fixed_network()
    x = np.array([1.0, 2.0])
    target = network.feed_forward(x).copy()
    before = [layer.matrix.copy() for layer in network.layers]

    network.train(x, target, network.new_context())

    for layer, original in zip(network.layers, before):
        np.testing.assert_allclose(layer.matrix, original, atol=1e-15)


def _leaky_network(seed):
    return construct(_settings(learning_rate=0.01), rng=np.random.default_rng(seed))


@pytest.mark.parametrize("seed", range(5))
def test_zero_input_gives_normalised_softmax(seed):
    output = _leaky_network(seed).feed_forward(np.zeros(4))
    assert output.shape == (3,)
    assert abs(output.sum() - 1.0) < 1e-9
    assert (output >= 0).all()


def test_training_converges_to_target():
    network = _leaky_network(1)
    x = np.array([1.0, 2.0, -1.0, 0.5])
    target = np.array([0.1, 0.7, 0.2])
    context = network.new_context()
    for _ in range(1000):
        network.train(x, target, context)
    output = network.feed_forward(x)
    np.testing.assert_allclose(output, target, atol=0.05)
    assert abs(output.sum() - 1.0) < 1e-9
