# Overview: Cart model catalogue shared by registrations and confirmation mail.

from __future__ import annotations


MODEL_IMAGES = {
    "X10 Argento": "x10-argento.jpg",
    "X10 Bianco": "x10-bianco.jpg",
    "Q Follow Black edition": "qfollow-black.jpg",
    "Q Follow Carbon": "qfollow-carbon.jpg",
    "Q Range Follow Red": "qrange-red.jpg",
    "Q Range Follow Blue": "qrange-blue.jpg",
    "Q Range Follow Black": "qrange-black.jpg",
    "VERTX": "vertx.jpg",
}

DEFAULT_IMAGE = "default.jpg"


def image_file_for(model: str | None) -> str | None:
    """Catalogue image for a model, or None when the model is not known."""
    if not model:
        return None
    return MODEL_IMAGES.get(model)


def image_url_for(model: str | None, base_url: str) -> str | None:
    if not base_url:
        return None
    image = image_file_for(model) or DEFAULT_IMAGE
    return f"{base_url.rstrip('/')}/{image}"
