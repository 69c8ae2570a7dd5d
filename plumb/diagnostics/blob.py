"""Persist an arbitrary payload to a private temp file for a downstream loader."""

import uuid
from pathlib import Path
from typing import Union


class TempValue:
    """Write *value* under *tmp_dir* once and expose a loader reference to it.

    The reference is a SQL ``LOAD_FILE("<path>")`` expression, so large
    values can be inlined into generated statements without escaping. MySQL
    only honours it when ``secure_file_priv`` allows the directory.

    Args:
        value: Payload; ``str`` is stored UTF-8 encoded.
        tmp_dir: Directory that outlives the statement using the reference,
                 typically ``RunContext.tmp_dir``.
    """

    def __init__(self, value: Union[bytes, str], tmp_dir: Path) -> None:
        self.path = Path(tmp_dir) / uuid.uuid4().hex
        data = value.encode("utf-8") if isinstance(value, str) else value
        with open(self.path, "wb") as fh:
            fh.write(data)

    @property
    def reference(self) -> str:
        return f'LOAD_FILE("{self.path}")'
