from app.db.session import engine
from app.models.quote import Base
from app.services.storage_service import storage

def init_db():
    print("Initializing database...")
    Base.metadata.create_all(bind=engine)
    print("Quotes table created successfully!")
    if storage.ensure_dir():
        print(f"Data directory ready: {storage.base}")

if __name__ == "__main__":
    init_db()
