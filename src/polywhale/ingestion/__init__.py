"""Market data ingestion: Polymarket CLOB WebSocket, REST hydration, Gamma discovery."""
