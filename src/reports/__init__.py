from reports import calendar_view, categories, summary, upcoming  # noqa: F401
