from fastapi.responses import JSONResponse


def _envelope(success: bool, data=None, error=None, message=None) -> dict:
    content = {"success": success}
    if data is not None:
        content["data"] = data
    if error is not None:
        content["error"] = error
    if message is not None:
        content["message"] = message
    return content


def success_response(data=None, message=None, status=200):
    return JSONResponse(
        status_code=status,
        content=_envelope(True, data=data, message=message),
    )


def error_response(error, status=400, data=None):
    return JSONResponse(
        status_code=status,
        content=_envelope(False, data=data, error=error),
    )


def unauthorized_response():
    """401 body shared by every guarded route; never says which check failed."""
    return JSONResponse(status_code=401, content={"error": "Unauthorized"})
