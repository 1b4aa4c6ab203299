from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from config.config import Config
from app.models.base import Base

# Create database engine
engine = create_engine(
    Config.DATABASE_URL,
    connect_args={'check_same_thread': False} if 'sqlite' in Config.DATABASE_URL else {}
)

# Loaded rows stay readable after their session is closed
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db():
    """Initialize database, create all tables"""
    import app.models  # noqa: F401  registers every table on Base.metadata
    Base.metadata.create_all(bind=engine)


def drop_db():
    """Drop all tables"""
    Base.metadata.drop_all(bind=engine)


@contextmanager
def get_db():
    """Provide a transactional scope for database operations"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class DatabaseManager:
    """Single-table helpers, one transaction per call"""

    def __init__(self, model_class):
        self.model_class = model_class

    def _filtered(self, db, filters):
        query = db.query(self.model_class)
        for key, value in filters.items():
            query = query.filter(getattr(self.model_class, key) == value)
        return query

    def create(self, **kwargs):
        """Insert a row and return it with defaults populated"""
        with get_db() as db:
            instance = self.model_class(**kwargs)
            db.add(instance)
            db.flush()
            db.refresh(instance)
            return instance

    def get(self, id):
        with get_db() as db:
            return db.query(self.model_class).filter(self.model_class.id == id).first()

    def get_by(self, **kwargs):
        """First row matching all field values"""
        with get_db() as db:
            return self._filtered(db, kwargs).first()

    def update(self, id, **kwargs):
        """Update a row by id; returns None when it does not exist"""
        with get_db() as db:
            instance = db.query(self.model_class).filter(self.model_class.id == id).first()
            if instance:
                for key, value in kwargs.items():
                    setattr(instance, key, value)
                db.flush()
                db.refresh(instance)
            return instance

    def update_where(self, filters, **values):
        """Conditional bulk update; returns the number of rows changed

        Only rows still matching ``filters`` at write time are touched, so two
        callers racing on the same row see exactly one success.
        """
        with get_db() as db:
            return self._filtered(db, filters).update(
                {getattr(self.model_class, key): value for key, value in values.items()},
                synchronize_session=False
            )

    def delete(self, id):
        """Delete a row by id; returns False when it does not exist"""
        with get_db() as db:
            instance = db.query(self.model_class).filter(self.model_class.id == id).first()
            if instance:
                db.delete(instance)
                return True
            return False

    def count(self, **kwargs):
        """Count rows matching all field values"""
        with get_db() as db:
            return self._filtered(db, kwargs).count()
