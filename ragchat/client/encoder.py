"""Wire encoding for chat requests.

A request without images goes out as a JSON body. A request with images goes
out as multipart/form-data: one field per request key plus one data URI field
per image (image_0, image_1, ...). The multipart Content-Type header is left to
the HTTP client so it can add the boundary.
"""

import json
from typing import Any

from pydantic import BaseModel, Field

from ragchat.models.schemas import ChatRequest

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"


class ChatHttpRequest(BaseModel):
    """Ready-to-send HTTP request for the chat endpoint.

    Exactly one of ``json_body`` or ``form`` is set.

    Attributes:
        method: HTTP method, always POST.
        url: Absolute URL of the chat endpoint.
        headers: Request headers.
        json_body: JSON payload for requests without images.
        form: Ordered multipart fields for requests with images.
    """

    method: str = "POST"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    json_body: dict[str, Any] | None = None
    form: list[tuple[str, str]] | None = None

    @property
    def is_multipart(self) -> bool:
        return self.form is not None


def _request_fields(request: ChatRequest) -> dict[str, Any]:
    """Dump every request key except images, dropping unset values."""
    data = request.model_dump(mode="json", exclude={"images"})
    return {key: value for key, value in data.items() if value is not None}


def _form_value(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value, separators=(",", ":"))


def encode_chat_request(request: ChatRequest, url: str) -> ChatHttpRequest:
    """Encode a chat request for the wire.

    Args:
        request: The logical chat request.
        url: Absolute URL of the chat endpoint.

    Returns:
        ChatHttpRequest with a JSON body, or multipart fields when images are attached.
    """
    fields = _request_fields(request)

    if not request.images:
        return ChatHttpRequest(
            url=url,
            headers={
                "Content-Type": "application/json",
                "Accept": EVENT_STREAM_MEDIA_TYPE,
            },
            json_body=fields,
        )

    form = [(key, _form_value(value)) for key, value in fields.items()]
    form.extend(
        (f"image_{index}", image.data_uri) for index, image in enumerate(request.images)
    )

    return ChatHttpRequest(
        url=url,
        headers={"Accept": EVENT_STREAM_MEDIA_TYPE},
        form=form,
    )
