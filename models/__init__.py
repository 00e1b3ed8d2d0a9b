from models.db_storage import DBStorage, classes  # noqa: F401
