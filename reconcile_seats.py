import argparse
import logging
import sys

from academy_api import config
from academy_api.database import build_engine, init_db
from academy_api.services.capacity import reconcile_enrolled_counts
from sqlalchemy.orm import sessionmaker

# Configuração básica de logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Reconcile class enrolled_count with the inscriptions table')
    parser.add_argument('--class-id', type=int, help='Only check this class')
    parser.add_argument('--apply', action='store_true', help='Write the corrected counts (default: report only)')
    parser.add_argument('--database-url', default=config.DATABASE_URL, help='Overrides DATABASE_URL')
    return parser.parse_args(argv)


def reconcile_seats(argv=None):
    """
    Lists every class whose seat counter disagrees with its seat-holding
    inscriptions and, with --apply, corrects it. Returns the number of
    discrepancies left unfixed.
    """
    args = parse_args(argv)

    logging.info("Conectando ao banco de dados...")
    engine = build_engine(args.database_url)
    init_db(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = SessionLocal()

    try:
        results = reconcile_enrolled_counts(db, class_id=args.class_id, apply=args.apply)
    except Exception as e:
        logging.error(f"Erro durante a reconciliação: {e}")
        db.rollback()
        raise
    finally:
        db.close()

    if not results:
        logging.info("All class counters match their inscriptions.")
        return 0

    for item in results:
        logging.info(
            f"-> Class {item.class_id}: recorded {item.recorded}, actual {item.actual}, "
            f"capacity {item.capacity}{' (fixed)' if item.applied else ''}"
        )

    unfixed = sum(1 for item in results if not item.applied)
    if args.apply:
        logging.info(f"{len(results) - unfixed} counters corrected, {unfixed} left untouched.")
    else:
        logging.info(f"{len(results)} discrepancies found. Run again with --apply to correct them.")
    return unfixed


if __name__ == "__main__":
    sys.exit(1 if reconcile_seats() else 0)
