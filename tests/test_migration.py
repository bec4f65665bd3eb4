from leadmarket import linkage, models, runners
from leadmarket.db import EntityStore
from migration.cleanup_users import cleanup
from migration.migrate_users_to_businesses import migrate
from migration.seed_admin import seed


def seed_legacy_users(db):
    """Users as older releases left them: business fields on the user, no business."""
    db.add_all([
        models.User(name="Old Bakery", email="bakery@x.com", role="business",
                    category="Food", location="Lyon", description="bread"),
        models.User(email="nameless@x.com", role="business"),
        models.User(name="Cust", email="cust@x.com", role="customer", location="Paris"),
        models.User(name="Boss", email="boss@x.com", role="admin"),
    ])
    db.commit()


def test_migration_with_no_candidates_creates_nothing(db_session):
    db_session.add(models.User(name="Cust", email="cust@x.com", role="customer"))
    db_session.commit()

    report = runners.migrate_users_to_businesses(db_session)
    assert report.candidates == 0
    assert report.created == [] and report.failed == []
    assert db_session.query(models.Business).count() == 0


def test_migration_links_unlinked_business_users(db_session):
    seed_legacy_users(db_session)

    report = runners.migrate_users_to_businesses(db_session)
    assert report.candidates == 2
    assert len(report.created) == 2

    bakery = db_session.query(models.User).filter_by(email="bakery@x.com").one()
    business = db_session.get(models.Business, bakery.business_id)
    assert business.owner == bakery.id
    assert business.name == "Old Bakery"
    assert (business.category, business.location, business.description) == ("Food", "Lyon", "bread")

    nameless = db_session.query(models.User).filter_by(email="nameless@x.com").one()
    assert db_session.get(models.Business, nameless.business_id).name == "nameless@x.com"

    # customers and admins are never given a business
    assert db_session.query(models.User).filter_by(email="cust@x.com").one().business_id is None

    again = runners.migrate_users_to_businesses(db_session)
    assert again.candidates == 0
    assert db_session.query(models.Business).count() == 2


def test_migration_skips_failing_user_and_continues(db_session, monkeypatch):
    seed_legacy_users(db_session)
    real = linkage.synthesize_business

    def picky(user):
        if user.email == "bakery@x.com":
            raise ValueError("bad legacy record")
        return real(user)

    monkeypatch.setattr(linkage, "synthesize_business", picky)
    report = runners.migrate_users_to_businesses(db_session)

    assert report.candidates == 2
    assert [e for _, e in report.failed] == ["bad legacy record"]
    assert len(report.created) == 1
    assert db_session.query(models.User).filter_by(email="bakery@x.com").one().business_id is None

    monkeypatch.undo()
    retry = runners.migrate_users_to_businesses(db_session)
    assert retry.candidates == 1
    assert len(retry.created) == 1


def test_cleanup_second_run_matches_nothing(db_session):
    seed_legacy_users(db_session)

    first = runners.cleanup_user_business_fields(db_session)
    assert first.matched == 2
    assert first.modified == 2
    db_session.expire_all()
    for user in db_session.query(models.User).all():
        assert user.legacy_business_fields() == {}

    second = runners.cleanup_user_business_fields(db_session)
    assert second.matched == 0
    assert second.modified == 0


def test_cli_runners_against_file_db(tmp_path):
    url = f"sqlite:///{tmp_path / 'leadmarket.db'}"
    with EntityStore(url) as store, store.session() as db:
        seed_legacy_users(db)

    report = migrate(url)
    assert report.candidates == 2 and len(report.created) == 2
    assert migrate(url).candidates == 0

    assert cleanup(url).matched == 2
    assert cleanup(url).matched == 0

    admin_id = seed(url, "root@x.com", "secret", "Root")
    assert admin_id is not None
    assert seed(url, "root@x.com", "secret") is None

    with EntityStore(url) as store, store.session() as db:
        root = db.get(models.User, admin_id)
        assert root.role == "admin"
        assert root.business_id is None
        assert db.query(models.Business).count() == 2
