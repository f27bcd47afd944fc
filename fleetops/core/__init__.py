# fleetops/core/__init__.py
"""
Доменный слой: диспетчеризация, матчинг, уведомления, симуляция маршрутов.
"""
