from flask import request

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def paginate(query):
    """
    Apply ``page``/``limit`` query params to a query.

    Out-of-range values fall back to page 1 and the default limit.

    Returns:
        (items, pagination dict for the response)
    """
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', DEFAULT_LIMIT, type=int)

    if page < 1:
        page = 1
    if limit < 1 or limit > MAX_LIMIT:
        limit = DEFAULT_LIMIT

    result = query.paginate(page=page, per_page=limit, error_out=False)
    return result.items, {
        'page': page,
        'limit': limit,
        'total': result.total,
        'pages': result.pages,
        'has_next': result.has_next,
        'has_prev': result.has_prev
    }
