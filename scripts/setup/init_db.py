# scripts/setup/init_db.py
"""
Initialize database — creates all tables and, optionally, seeds the animal
catalog and the blob store buckets.
Run once before first launch, or after adding new models.
Usage: python scripts/setup/init_db.py [--animals animals.csv] [--buckets]
"""

import argparse
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from trapcam.database import SessionLocal, create_tables, engine
from trapcam.config import settings
from trapcam.services.animal_service import import_animals
from trapcam.services.blob_store import get_blob_store
from sqlalchemy import inspect, text


def main():
    parser = argparse.ArgumentParser(description="Initialize the TrapCam database")
    parser.add_argument("--animals", help="File of 'id;class;order;family;genus;species;common name' lines")
    parser.add_argument("--buckets", action="store_true", help="Create blob store buckets and lifecycle rules")
    args = parser.parse_args()

    print("🗄️  TrapCam DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    # Test connection
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  docker-compose up -d db")
        print("  # or: sudo systemctl start postgresql")
        sys.exit(1)

    # Create all tables
    print("\n📋 Creating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"\n📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    if args.animals:
        with open(args.animals, encoding="utf-8") as f:
            lines = [line.strip() for line in f if line.strip()]
        db = SessionLocal()
        try:
            imported = import_animals(db, lines)
        finally:
            db.close()
        print(f"\n🦊 Imported {imported}/{len(lines)} animals from {args.animals}")

    if args.buckets:
        get_blob_store().ensure_buckets()
        print(f"\n🪣 Buckets ready: {settings.EMAIL_ARCHIVE_BUCKET}, {settings.IMAGE_BUCKET}")

    print("\n🎉 Database ready! You can now start the backend:")
    print("   uvicorn trapcam.main:app --host 0.0.0.0 --port 8080 --reload")


if __name__ == "__main__":
    main()
