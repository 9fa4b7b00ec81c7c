"""Decrypting every database of an account and merging them into one file."""

from __future__ import annotations

from os import PathLike
from pathlib import Path
from typing import Optional, Union

from .combiner import CombineError, DbCombiner, ProgressCallback
from .constants import WeChatDbType
from .decryptor import DbDecryptor, DecryptError

PathType = Union[str, "PathLike[str]"]


class PipelineError(Exception):
    """Decrypting or merging the databases failed."""


class DecryptPipeline:
    """Decrypts all databases under a data directory and merges the results."""

    def __init__(
        self,
        data_path: PathType,
        output_path: PathType,
        merged_path: PathType,
        secret_key: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.data_path = Path(data_path)
        self.output_path = Path(output_path)
        self.merged_path = Path(merged_path)
        self._secret_key = secret_key
        self._on_progress = on_progress
        self.decrypted_files: list[Path] = []

    def run(self) -> Path:
        """Decrypt, then merge; return the path of the merged database.

        Raises PipelineError if there is nothing to decrypt, nothing could be
        decrypted, or the merged database cannot be written.
        """
        decryptor = DbDecryptor(
            list(WeChatDbType),
            self.data_path,
            self.output_path,
            self._secret_key,
            self._on_progress,
        )
        if not decryptor.prepare():
            raise PipelineError(f"no database files found under {self.data_path}")
        try:
            self.decrypted_files = decryptor.decrypt()
        except DecryptError as exc:
            raise PipelineError(f"decrypt failed: {exc}") from exc

        combiner = DbCombiner(self.decrypted_files, self.merged_path, self._on_progress)
        try:
            return combiner.combine()
        except CombineError as exc:
            raise PipelineError(f"merge failed: {exc}") from exc