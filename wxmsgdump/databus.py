"""Shared application state: account details, output paths, the reader and head images."""

from __future__ import annotations

import logging
import os
import threading
import urllib.request
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .constants import STR_CREATETIME, STR_FORWARD, STR_LIMIT, STR_USERNAME
from .dbpool import QueryCallback, Row
from .dbreader import WechatDbReader

logger = logging.getLogger(__name__)

_HEAD_IMAGE_CACHE_SIZE = 100
_MERGED_DB_NAME = "merged_db.db"
_APP_DIR_NAME = "wxmsgdump"
_FETCH_TIMEOUT = 10

ImageFetcher = Callable[[str], Optional[bytes]]


class HeadImageObserver(ABC):
    """Something that shows the head image of an account."""

    @abstractmethod
    def set_head_image(self, image: bytes) -> None:
        """Receive the encoded image data."""


@dataclass
class WxInfo:
    """Details of the logged-in account."""

    version: str = ""
    exe_path: str = ""
    phone_number: str = ""
    user_name: str = ""
    wx_number: str = ""
    secret_key: str = ""
    wxid: str = ""
    data_path: str = ""
    process_id: int = 0


def _default_data_dir() -> Path:
    base = os.environ.get("LOCALAPPDATA") or os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / _APP_DIR_NAME


def _fetch_url(url: str) -> Optional[bytes]:
    try:
        with urllib.request.urlopen(url, timeout=_FETCH_TIMEOUT) as response:
            return response.read()
    except (OSError, ValueError) as exc:
        logger.debug("fetching %s failed: %s", url, exc)
        return None


class DataBus:
    """Holds what the decrypting and viewing parts of the application share."""

    def __init__(self) -> None:
        self.wx_info = WxInfo()
        self.memory_read_success = False
        self.decrypt_output_path: Optional[Path] = None
        self.merged_db_file_path: Optional[Path] = None
        self.db_reader: Optional[WechatDbReader] = None
        self.image_fetcher: ImageFetcher = _fetch_url
        self._head_images: OrderedDict = OrderedDict()
        self._observers: dict[str, list[HeadImageObserver]] = {}
        self._lock = threading.RLock()

    def auto_set_decrypt_path(self, base: Union[str, os.PathLike, None] = None) -> Path:
        """Choose the output directory and the merged database path for the current wxid."""
        self.decrypt_output_path = Path(base) if base is not None else _default_data_dir()
        self.merged_db_file_path = self.decrypt_output_path / self.wx_info.wxid / _MERGED_DB_NAME
        return self.merged_db_file_path

    def create_db_reader(self) -> bool:
        """Open a reader on the merged database; False if that file does not exist."""
        path = self.merged_db_file_path
        if path is None or not Path(path).exists():
            return False
        if self.db_reader is not None:
            self.db_reader.close()
        self.db_reader = WechatDbReader(str(path))
        return True

    def _reader(self) -> WechatDbReader:
        if self.db_reader is None:
            raise RuntimeError("no database reader; call create_db_reader() first")
        return self.db_reader

    def _notify(self, wxid: str) -> None:
        with self._lock:
            observers = list(self._observers.get(wxid, ()))
            image = self._head_images.get(wxid)
        if image is None:
            return
        for observer in observers:
            observer.set_head_image(image)

    def add_head_image(self, wxid: str, image: Optional[bytes], notify_all: bool = True) -> None:
        """Cache a head image and, unless told otherwise, pass it to the observers of wxid."""
        if image is None:
            return
        with self._lock:
            self._head_images[wxid] = image
            self._head_images.move_to_end(wxid)
            while len(self._head_images) > _HEAD_IMAGE_CACHE_SIZE:
                self._head_images.popitem(last=False)
        if notify_all:
            self._notify(wxid)

    def head_image(self, wxid: str) -> Optional[bytes]:
        """The cached head image of wxid, or None."""
        with self._lock:
            image = self._head_images.get(wxid)
            if image is not None:
                self._head_images.move_to_end(wxid)
            return image

    def attach_head_image_observer(self, wxid: str, observer: Optional[HeadImageObserver]) -> None:
        """Register an observer for the head image of wxid."""
        if observer is None:
            return
        with self._lock:
            observers = self._observers.setdefault(wxid, [])
            if observer not in observers:
                observers.append(observer)

    def detach_head_image_observer(self, wxid: str, observer: HeadImageObserver) -> None:
        """Stop passing head images of wxid to the observer."""
        with self._lock:
            observers = self._observers.get(wxid)
            if observers and observer in observers:
                observers.remove(observer)

    def request_head_image(
        self, wxid: str, observer: Optional[HeadImageObserver] = None
    ) -> "Optional[Future[list[Row]]]":
        """Deliver the head image of wxid, looking it up in the database if it is not cached.

        Without an observer the cached image goes to every attached observer.
        Returns the pending lookup, or None when no lookup was needed.
        """
        if observer is None:
            self._notify(wxid)
            return None
        image = self.head_image(wxid)
        if image is not None:
            observer.set_head_image(image)
            return None
        return self._reader().select_head_image_by_user_name(
            self.on_head_image_selected, {STR_USERNAME: wxid}
        )

    def on_head_image_selected(self, result: list[Row], context: Any = None) -> None:
        """Fetch the image named by a head image lookup and store it."""
        if len(result) != 1:
            return
        row = result[0]
        user_name = str(row.get("usrName") or "")
        small_url = str(row.get("smallHeadImgUrl") or "")
        if not user_name or not small_url:
            return
        image = self.image_fetcher(small_url)
        if not image:
            return
        self.add_head_image(user_name, image)
        if callable(context):
            context()

    def request_contact_info(
        self, wxid: str, callback: Optional[QueryCallback] = None
    ) -> "Future[list[Row]]":
        """Look up the contact entry of wxid."""
        return self._reader().select_contact_by_user_name(callback, {STR_USERNAME: wxid})

    def request_all_str_talker(self, callback: Optional[QueryCallback] = None) -> "Future[list[Row]]":
        """Look up every talker with messages, busiest first."""
        return self._reader().select_all_str_talker(callback)

    def request_chat_count(
        self, wxid: str, callback: Optional[QueryCallback] = None
    ) -> "Future[list[Row]]":
        """Count the messages exchanged with wxid."""
        return self._reader().select_chat_count_by_user_name(callback, {STR_USERNAME: wxid})

    def request_chat_history(
        self,
        wxid: str,
        create_time: int,
        forward: bool,
        limit: int,
        callback: Optional[QueryCallback] = None,
    ) -> "Future[list[Row]]":
        """Fetch a page of messages with wxid starting at create_time."""
        params = {
            STR_USERNAME: wxid,
            STR_CREATETIME: create_time,
            STR_FORWARD: forward,
            STR_LIMIT: limit,
        }
        return self._reader().select_chat_history_by_user_name(callback, params)