"""
Weather lookup service package.

The service answers "current weather for city X" requests, enforcing:
- Rate limiting: per-client sliding window, checked before any lookup
- Cache-aside reads: fresh cache hits never touch the upstream provider
- Stale fallback: expired-but-retained records are served when upstream fails

Structure:
- app.main: FastAPI app, routes, and dependency wiring.
- app.caching: Freshness policy and the fail-open record store.
- app.weather: Response models and the lookup orchestrator.
- app.providers: Upstream OpenWeather client and mock provider routes.
- app.ratelimit: Sliding-window limiter.
"""
