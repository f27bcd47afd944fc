# fleetops/shared/__init__.py
"""
Общие схемы событий и DTO для межсервисного взаимодействия.
"""
