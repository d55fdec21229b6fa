"""SQLAlchemy persistence: engine, models, repositories, unit of work."""
