from . import stats, submit

__all__ = ['stats', 'submit']
