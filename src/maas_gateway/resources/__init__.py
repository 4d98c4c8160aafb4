"""Resource request pipeline: URI routing, filtering, pagination, caching,
mapping, validation, dispatch and formatting."""
