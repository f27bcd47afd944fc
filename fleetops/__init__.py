# fleetops/__init__.py
"""
Диспетчеризация заказов: матчинг водителей, рассылка уведомлений, симуляция маршрутов.
"""

__version__ = "1.0.0"
