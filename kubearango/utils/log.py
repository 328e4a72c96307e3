# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
from typing import Any, MutableMapping, Tuple


class FieldsAdapter(logging.LoggerAdapter):
    """Logger carrying a fixed set of structured fields"""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = " ".join(f"{key}={value}" for key, value in self.extra.items())
        extra = dict(kwargs.get("extra") or {})
        extra.setdefault("fields", dict(self.extra))
        kwargs["extra"] = extra
        return f"{msg} [{fields}]" if fields else msg, kwargs

    def with_fields(self, **fields: Any) -> "FieldsAdapter":
        return FieldsAdapter(self.logger, {**self.extra, **fields})


def with_fields(logger: logging.Logger, **fields: Any) -> FieldsAdapter:
    """Return a logger that appends key=value fields to every message"""
    return FieldsAdapter(logger, fields)
