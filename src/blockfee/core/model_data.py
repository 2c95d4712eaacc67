"""
Fee Model Data - Feed-forward Regression Evaluator

Deserializes a compact, self-describing binary artifact into an ordered stack
of dense layers plus input/output normalization, and evaluates it against a
named feature vector in single precision.

Artifact layout (little-endian):
    magic          4 bytes  b"BFMD"
    version        uint16
    n_features     uint16
      name_len     uint8    (per feature)
      name         utf-8
    input_offset   float32[n_features]
    input_scale    float32[n_features]
    n_layers       uint16
      rows, cols   uint16, uint16   (per layer)
      activation   uint8
      weights      float32[rows * cols], row-major
      bias         float32[rows]
    output_offset  float32
    output_scale   float32

Inputs are normalized as ``(x - offset) / scale`` and the single output is
mapped back with ``y * scale + offset``.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence, Tuple, Union

import numpy as np

from blockfee.core.constants import MODEL_FORMAT_VERSION, MODEL_MAGIC
from blockfee.core.fee_exceptions import (
    CorruptModelError,
    DimensionMismatchError,
    MissingFeatureError,
    ModelDeserializationError,
    NonFiniteEstimateError,
)

logger = logging.getLogger(__name__)

_MAX_U16 = 0xFFFF
_MAX_NAME_BYTES = 0xFF


class Activation(IntEnum):
    """Element-wise layer activations, valued by their wire tag."""

    IDENTITY = 0
    RELU = 1
    TANH = 2
    SIGMOID = 3

    @classmethod
    def from_name(cls, name: str) -> "Activation":
        try:
            return cls[name.upper()]
        except KeyError as exc:
            raise CorruptModelError(f"Unknown activation {name!r}") from exc

    def apply(self, values: np.ndarray) -> np.ndarray:
        if self is Activation.IDENTITY:
            return values
        if self is Activation.RELU:
            return np.maximum(values, np.float32(0.0))
        if self is Activation.TANH:
            return np.tanh(values)
        # exp overflows to inf for very negative inputs, which still yields 0
        with np.errstate(over="ignore"):
            return np.float32(1.0) / (np.float32(1.0) + np.exp(-values))


def _frozen_f32(values: Union[Sequence[float], np.ndarray], ndim: int, what: str) -> np.ndarray:
    array = np.array(values, dtype=np.float32)
    if array.ndim != ndim:
        raise DimensionMismatchError(
            f"{what} must be {ndim}-dimensional, got shape {array.shape}",
            details={"what": what, "shape": list(array.shape)},
        )
    if not np.all(np.isfinite(array)):
        raise CorruptModelError(f"{what} contains non-finite values", details={"what": what})
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class Layer:
    """Dense layer computing ``activation(weights @ x + bias)``."""

    weights: np.ndarray
    bias: np.ndarray
    activation: Activation = Activation.IDENTITY

    def __post_init__(self) -> None:
        weights = _frozen_f32(self.weights, 2, "layer weights")
        bias = _frozen_f32(self.bias, 1, "layer bias")
        rows, cols = weights.shape
        if rows == 0 or cols == 0 or rows > _MAX_U16 or cols > _MAX_U16:
            raise DimensionMismatchError(
                f"Layer shape {rows}x{cols} is out of range",
                details={"rows": rows, "cols": cols},
            )
        if bias.shape != (rows,):
            raise DimensionMismatchError(
                f"Bias length {bias.shape[0]} does not match {rows} weight rows",
                details={"rows": rows, "bias": bias.shape[0]},
            )
        object.__setattr__(self, "weights", weights)
        object.__setattr__(self, "bias", bias)
        object.__setattr__(self, "activation", Activation(self.activation))

    @property
    def rows(self) -> int:
        return self.weights.shape[0]

    @property
    def cols(self) -> int:
        return self.weights.shape[1]

    def forward(self, vector: np.ndarray) -> np.ndarray:
        if vector.shape != (self.cols,):
            raise DimensionMismatchError(
                f"Layer expects {self.cols} inputs, got shape {vector.shape}",
                details={"expected": self.cols, "shape": list(vector.shape)},
            )
        return self.activation.apply(self.weights @ vector + self.bias)


class _ArtifactReader:
    """Sequential little-endian reader that reports truncation with its offset."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset

    def _claim(self, size: int, what: str) -> int:
        if size > self.remaining:
            raise ModelDeserializationError(
                f"Truncated model artifact while reading {what}: "
                f"need {size} bytes, {self.remaining} left",
                offset=self.offset,
            )
        start = self.offset
        self.offset += size
        return start

    def unpack(self, fmt: str, what: str) -> tuple:
        start = self._claim(struct.calcsize(fmt), what)
        return struct.unpack_from(fmt, self._data, start)

    def raw(self, size: int, what: str) -> bytes:
        start = self._claim(size, what)
        return self._data[start:start + size]

    def floats(self, count: int, what: str) -> np.ndarray:
        start = self._claim(4 * count, what)
        return np.frombuffer(self._data, dtype="<f4", count=count, offset=start).astype(np.float32)


class ModelData:
    """Immutable feed-forward regression model over named features."""

    def __init__(
        self,
        feature_names: Iterable[str],
        input_offset: Sequence[float],
        input_scale: Sequence[float],
        layers: Iterable[Layer],
        output_offset: float,
        output_scale: float,
    ) -> None:
        names = tuple(feature_names)
        if not names:
            raise CorruptModelError("Model declares no features")
        if len(names) > _MAX_U16:
            raise CorruptModelError(f"Model declares too many features ({len(names)})")
        if len(set(names)) != len(names):
            duplicates = sorted({name for name in names if names.count(name) > 1})
            raise CorruptModelError(
                f"Duplicate feature names: {', '.join(duplicates)}",
                details={"duplicates": duplicates},
            )
        for name in names:
            if not name or len(name.encode("utf-8")) > _MAX_NAME_BYTES:
                raise CorruptModelError(f"Invalid feature name {name!r}")

        offsets = _frozen_f32(input_offset, 1, "input offset")
        scales = _frozen_f32(input_scale, 1, "input scale")
        for what, array in (("input offset", offsets), ("input scale", scales)):
            if array.shape != (len(names),):
                raise DimensionMismatchError(
                    f"{what} has {array.shape[0]} entries for {len(names)} features",
                    details={"what": what, "entries": array.shape[0], "features": len(names)},
                )
        if np.any(scales == 0):
            raise CorruptModelError("Input scale contains zeros")

        stack = tuple(layers)
        if not stack:
            raise CorruptModelError("Model has no layers")
        width = len(names)
        for index, layer in enumerate(stack):
            if layer.cols != width:
                raise DimensionMismatchError(
                    f"Layer {index} expects {layer.cols} inputs but receives {width}",
                    details={"layer": index, "expected": layer.cols, "received": width},
                )
            width = layer.rows
        if width != 1:
            raise DimensionMismatchError(
                f"Final layer must produce a single output, produces {width}",
                details={"outputs": width},
            )

        out_offset, out_scale = _frozen_f32([output_offset, output_scale], 1, "output normalization")
        if out_scale == 0:
            raise CorruptModelError("Output scale is zero")

        self._feature_names = names
        self._input_offset = offsets
        self._input_scale = scales
        self._layers = stack
        self._output_offset = np.float32(out_offset)
        self._output_scale = np.float32(out_scale)

    # ==================== Accessors ====================

    @property
    def feature_names(self) -> Tuple[str, ...]:
        return self._feature_names

    @property
    def input_size(self) -> int:
        return len(self._feature_names)

    @property
    def input_offset(self) -> np.ndarray:
        return self._input_offset

    @property
    def input_scale(self) -> np.ndarray:
        return self._input_scale

    @property
    def layers(self) -> Tuple[Layer, ...]:
        return self._layers

    @property
    def output_offset(self) -> np.float32:
        return self._output_offset

    @property
    def output_scale(self) -> np.float32:
        return self._output_scale

    # ==================== Serialization ====================

    @classmethod
    def from_bytes(cls, data: bytes) -> "ModelData":
        """
        Deserialize a model artifact.

        Args:
            data: Raw artifact bytes

        Returns:
            Loaded model

        Raises:
            ModelDeserializationError: Bytes are malformed, truncated or have trailing data
            DimensionMismatchError: Layer shapes disagree with the feature count or each other
            CorruptModelError: Values are unusable (zero scales, non-finite weights, ...)
        """
        reader = _ArtifactReader(data)

        magic, version = reader.unpack("<4sH", "header")
        if magic != MODEL_MAGIC:
            raise ModelDeserializationError(f"Bad model magic {magic!r}", offset=0)
        if version != MODEL_FORMAT_VERSION:
            raise ModelDeserializationError(
                f"Unsupported model format version {version}",
                offset=4,
                details={"version": version},
            )

        (n_features,) = reader.unpack("<H", "feature count")
        if n_features == 0:
            raise ModelDeserializationError("Model declares no features", offset=reader.offset)
        names = []
        for _ in range(n_features):
            (length,) = reader.unpack("<B", "feature name length")
            start = reader.offset
            raw = reader.raw(length, "feature name")
            try:
                names.append(raw.decode("utf-8"))
            except UnicodeDecodeError as exc:
                raise ModelDeserializationError("Feature name is not valid UTF-8", offset=start) from exc

        input_offset = reader.floats(n_features, "input offsets")
        input_scale = reader.floats(n_features, "input scales")

        (n_layers,) = reader.unpack("<H", "layer count")
        if n_layers == 0:
            raise ModelDeserializationError("Model has no layers", offset=reader.offset)
        layers = []
        for index in range(n_layers):
            start = reader.offset
            rows, cols, tag = reader.unpack("<HHB", f"layer {index} header")
            if rows == 0 or cols == 0:
                raise ModelDeserializationError(
                    f"Layer {index} has an empty {rows}x{cols} shape", offset=start
                )
            try:
                activation = Activation(tag)
            except ValueError as exc:
                raise ModelDeserializationError(
                    f"Layer {index} has unknown activation tag {tag}", offset=start + 4
                ) from exc
            weights = reader.floats(rows * cols, f"layer {index} weights").reshape(rows, cols)
            bias = reader.floats(rows, f"layer {index} bias")
            layers.append(Layer(weights, bias, activation))

        output_offset, output_scale = reader.unpack("<ff", "output normalization")
        if reader.remaining:
            raise ModelDeserializationError(
                f"{reader.remaining} trailing bytes after model artifact", offset=reader.offset
            )

        return cls(names, input_offset, input_scale, layers, output_offset, output_scale)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ModelData":
        path = Path(path)
        model = cls.from_bytes(path.read_bytes())
        logger.debug(
            "Loaded fee model %s",
            path.name,
            extra={
                "event": "fee_model.loaded",
                "artifact": path.name,
                "features": model.input_size,
                "layers": len(model.layers),
            },
        )
        return model

    @classmethod
    def from_description(cls, description: Mapping[str, Any]) -> "ModelData":
        """
        Build a model from the JSON description emitted by training.

        Expected keys: ``features``, ``input_offset``, ``input_scale``,
        ``layers`` (each with ``weights``, ``bias`` and an ``activation``
        name) and ``output_offset`` / ``output_scale``.
        """
        try:
            layers = [
                Layer(
                    layer["weights"],
                    layer["bias"],
                    Activation.from_name(layer.get("activation", "identity")),
                )
                for layer in description["layers"]
            ]
            return cls(
                description["features"],
                description["input_offset"],
                description["input_scale"],
                layers,
                description["output_offset"],
                description["output_scale"],
            )
        except KeyError as exc:
            raise CorruptModelError(
                f"Model description is missing {exc.args[0]!r}",
                details={"key": exc.args[0]},
            ) from exc

    def to_bytes(self) -> bytes:
        """Serialize to the artifact layout read by :meth:`from_bytes`."""
        parts = [struct.pack("<4sHH", MODEL_MAGIC, MODEL_FORMAT_VERSION, len(self._feature_names))]
        for name in self._feature_names:
            encoded = name.encode("utf-8")
            parts.append(struct.pack("<B", len(encoded)))
            parts.append(encoded)
        parts.append(self._input_offset.astype("<f4").tobytes())
        parts.append(self._input_scale.astype("<f4").tobytes())
        parts.append(struct.pack("<H", len(self._layers)))
        for layer in self._layers:
            parts.append(struct.pack("<HHB", layer.rows, layer.cols, int(layer.activation)))
            parts.append(np.ascontiguousarray(layer.weights).astype("<f4").tobytes())
            parts.append(layer.bias.astype("<f4").tobytes())
        parts.append(struct.pack("<ff", float(self._output_offset), float(self._output_scale)))
        return b"".join(parts)

    # ==================== Evaluation ====================

    def predict(self, features: Mapping[str, float]) -> np.float32:
        """
        Evaluate the model on a named feature vector.

        Features are looked up in the model's canonical order; extra keys are
        ignored.

        Raises:
            MissingFeatureError: A declared feature is absent from ``features``
            DimensionMismatchError: The layer stack is internally inconsistent
            NonFiniteEstimateError: The denormalized result is NaN or infinite
        """
        missing = [name for name in self._feature_names if name not in features]
        if missing:
            raise MissingFeatureError(missing)

        raw = np.array([features[name] for name in self._feature_names], dtype=np.float32)

        # Overflow surfaces as a non-finite result below
        with np.errstate(over="ignore", invalid="ignore"):
            vector = (raw - self._input_offset) / self._input_scale
            for layer in self._layers:
                vector = layer.forward(vector)
            result = np.float32(vector[0] * self._output_scale + self._output_offset)

        if not np.isfinite(result):
            raise NonFiniteEstimateError(float(result))
        return result

    def __repr__(self) -> str:
        shape = " -> ".join(
            [str(self.input_size)] + [f"{layer.rows}({layer.activation.name.lower()})" for layer in self._layers]
        )
        return f"ModelData({shape})"


__all__ = ["Activation", "Layer", "ModelData"]
