"""Repository query helpers."""

DEFAULT_PAGE_SIZE = 100


def each_row(query, page_size=DEFAULT_PAGE_SIZE):
    """Yield every row ``query`` matches, fetching ``page_size`` rows at a time.

    Protean caps an unbounded query at the aggregate's default limit, so a
    sweep that reads ``.all()`` once silently misses everything past it.
    """
    offset = 0
    while True:
        page = query.offset(offset).limit(page_size).all()
        yield from page.items
        if not page.has_next:
            return
        offset += page_size
