__version__ = '0.1.0'
__timestamp__ = 'unknown'
