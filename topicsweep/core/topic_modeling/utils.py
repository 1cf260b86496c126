from __future__ import annotations
from typing import List, Any
import json
import ast


def ensure_token_list(x: Any) -> List[str]:
    # Accept list[str], JSON string, Python literal string (CSV export) or plain text
    if isinstance(x, (list, tuple)):
        return [str(t) for t in x]
    if isinstance(x, str):
        s = x.strip()
        if s.startswith("["):
            try:
                v = json.loads(s)
                if isinstance(v, list):
                    return [str(t) for t in v]
            except json.JSONDecodeError:
                pass
            try:
                v = ast.literal_eval(s)
                if isinstance(v, list):
                    return [str(t) for t in v]
            except (ValueError, SyntaxError):
                pass
        return s.split()
    return [] if x is None else [str(x)]
