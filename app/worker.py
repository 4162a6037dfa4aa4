"""Reference classification worker.

Usage: python -m app.worker IMAGE_PATH MODEL_DIR

Prints one JSON object with `label`, `probability` and `classId` to stdout
and exits 0, or writes the error to stderr and exits 1.
"""
import json
import sys
from pathlib import Path

import numpy as np
import tensorflow as tf
from PIL import Image

MODEL_FILENAME = "model.keras"
LABELS_FILENAME = "labels.json"
DEFAULT_INPUT_SHAPE = (224, 224, 3)


def find_model_path(model_dir: Path) -> Path:
    path = model_dir / MODEL_FILENAME
    if path.exists():
        return path
    if model_dir.is_dir():
        for p in sorted(model_dir.glob("*.keras")) or sorted(model_dir.glob("**/*.keras")):
            return p
    raise FileNotFoundError(f"Model not found in {model_dir}")


def load_model(model_dir: Path) -> tf.keras.Model:
    return tf.keras.models.load_model(find_model_path(model_dir), compile=False)


def get_input_shape(model: tf.keras.Model) -> tuple[int, int, int]:
    try:
        s = model.input.shape
    except (AttributeError, ValueError):
        return DEFAULT_INPUT_SHAPE
    if s is not None and len(s) == 4 and all(d is not None for d in s[1:]):
        return (int(s[1]), int(s[2]), int(s[3]))
    return DEFAULT_INPUT_SHAPE


def get_class_names(model_dir: Path, num_classes: int) -> list[str]:
    """Class names from `labels.json`, or `class_<i>` when there is none."""
    path = model_dir / LABELS_FILENAME
    if path.exists():
        names = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(names, list) or len(names) != num_classes:
            raise ValueError(f"{path} must list exactly {num_classes} class names")
        return [str(n) for n in names]
    return [f"class_{i}" for i in range(num_classes)]


def preprocess_image(image: Image.Image, shape: tuple[int, int, int]) -> np.ndarray:
    if image.mode != "RGB":
        image = image.convert("RGB")
    img = np.array(image)
    img = tf.image.resize(img, (shape[0], shape[1]))
    img = tf.cast(img, tf.float32) / 255.0
    return np.expand_dims(img.numpy(), axis=0)


def predict(model: tf.keras.Model, image_batch: np.ndarray) -> tuple[int, np.ndarray]:
    logits = model(image_batch, training=False)
    probs = np.squeeze(tf.nn.softmax(logits).numpy())
    if probs.ndim == 0:
        probs = np.expand_dims(probs, 0)
    return int(np.argmax(probs)), probs


def classify(image_path: Path, model_dir: Path) -> dict:
    model = load_model(model_dir)
    with Image.open(image_path) as img:
        img.load()
        x = preprocess_image(img, get_input_shape(model))
    idx, probs = predict(model, x)
    class_names = get_class_names(model_dir, len(probs))
    return {"label": class_names[idx], "probability": float(probs[idx]), "classId": idx}


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 2:
        print("usage: python -m app.worker IMAGE_PATH MODEL_DIR", file=sys.stderr)
        return 2
    try:
        result = classify(Path(args[0]), Path(args[1]))
    except Exception as e:
        print(f"{type(e).__name__}: {e}", file=sys.stderr)
        return 1
    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
