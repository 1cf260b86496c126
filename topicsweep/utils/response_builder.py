from fastapi.responses import JSONResponse
from typing import Any, Optional
from pydantic import BaseModel
import datetime
import math

import numpy as np


def serialize_data(data: Any):
    """Helper to convert Pydantic models, numpy scalars and NaN cleanly."""
    if isinstance(data, BaseModel):
        return serialize_data(data.model_dump())
    if isinstance(data, (list, tuple)):
        return [serialize_data(item) for item in data]
    if isinstance(data, dict):
        return {str(key): serialize_data(value) for key, value in data.items()}
    if isinstance(data, datetime.datetime):
        return data.isoformat()
    if isinstance(data, np.generic):
        data = data.item()
    if isinstance(data, float) and not math.isfinite(data):
        return None  # JSON has no NaN
    return data


def success_response(
    message: str, data: Optional[Any] = None, status_code: int = 200
) -> JSONResponse:
    serialized_data = serialize_data(data)

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "success",
            "message": message,
            "data": serialized_data,
        },
    )
