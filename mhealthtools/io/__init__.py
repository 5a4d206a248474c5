from .reader import load_sensor_data

__all__ = ['load_sensor_data']
