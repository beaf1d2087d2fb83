from typing import Any, Optional

def success(data: Any = None, msg: str = "OK", count: Optional[int] = None):
    response = {
        "success": True,
        "msg": msg,
        "data": data
    }
    if count is not None:
        response["count"] = count
    return response

def fail(msg: str = "Request failed", data: Any = None):
    return {
        "success": False,
        "msg": msg,
        "data": data
    }
