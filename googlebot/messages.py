"""Outbound Matrix message values returned by command handlers."""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class TextNotice:
    """A plain text m.notice message."""
    body: str
    msgtype: str = "m.notice"

    def to_content(self) -> dict[str, Any]:
        return {"msgtype": self.msgtype, "body": self.body}


@dataclass(frozen=True)
class ImageInfo:
    """Image metadata. Zero or empty fields are left out of the event."""
    height: int = 0
    width: int = 0
    mimetype: str = ""

    def to_content(self) -> dict[str, Any]:
        info: dict[str, Any] = {}
        if self.height:
            info["h"] = self.height
        if self.width:
            info["w"] = self.width
        if self.mimetype:
            info["mimetype"] = self.mimetype
        return info


@dataclass(frozen=True)
class ImageMessage:
    """An m.image message pointing at content in the homeserver media repo."""
    body: str
    url: str
    info: ImageInfo
    msgtype: str = "m.image"

    def to_content(self) -> dict[str, Any]:
        return {
            "msgtype": self.msgtype,
            "body": self.body,
            "url": self.url,
            "info": self.info.to_content(),
        }


OutboundMessage = Union[TextNotice, ImageMessage]
