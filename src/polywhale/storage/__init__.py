"""DuckDB persistence for alert history and dedup keys."""
