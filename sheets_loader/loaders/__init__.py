from .loader import LoaderResult, SqlToSheetsLoader, build_batch_update_body

__all__ = [
    'LoaderResult',
    'SqlToSheetsLoader',
    'build_batch_update_body',
]
