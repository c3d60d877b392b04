from flask import jsonify


def success_response(data=None, message="OK", status_code=200, meta=None):
    payload = {"success": True, "message": message}
    if data is not None:
        payload["data"] = data
    if meta is not None:
        payload["meta"] = meta
    response = jsonify(payload)
    response.status_code = status_code
    return response


def parse_page_args(page, per_page, default_per_page: int = 20, max_per_page: int = 100) -> tuple[int, int]:
    """Normaliza page/per_page de query string (valores inválidos caen al default)."""

    try:
        page_int = max(int(page), 1)
    except (TypeError, ValueError):
        page_int = 1
    try:
        per_page_int = int(per_page)
    except (TypeError, ValueError):
        per_page_int = default_per_page
    if per_page_int < 1 or per_page_int > max_per_page:
        per_page_int = default_per_page
    return page_int, per_page_int
