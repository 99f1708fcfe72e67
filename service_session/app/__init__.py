"""
Session Service package.

Attaches a lazily loaded, distributed-cache-backed session to every
request. It provides:

- app.main: Service wiring, health, metrics and a demo endpoint.
- app.session: ``LazySession`` plus its wire format and typed accessors.
- app.cache: Redis and in-memory distributed cache backends.
- app.middleware: Request middleware and the ``get_session`` dependency.

Guidelines:
- A session is owned by exactly one request; never share instances.
- Reads must not reach the cache for requests without a session cookie.
- Cache failures degrade the session, they never fail the response.
"""
