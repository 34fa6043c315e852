from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from genoi.core.settings import get_settings

settings = get_settings()

database_url = f"sqlite:///{settings.sqlite_path.as_posix()}"
engine = create_engine(database_url, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
