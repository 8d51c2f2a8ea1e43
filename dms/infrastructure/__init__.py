"""
Infrastructure layer package.

Adapters implementing domain ports: SQLAlchemy persistence and the
external market data and identifier services.
"""
