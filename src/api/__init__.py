"""
Binance API Clients
Signed access to the Binance C2C order endpoints.

Usage:
    from src.api.binance_c2c import BinanceC2CClient

    client = BinanceC2CClient.from_settings(settings)
    page = client.list_orders(1, 20, start_ms, end_ms)
"""
