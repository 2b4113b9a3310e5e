"""
Tests for the school directory
"""

import pytest

from app.models.school import School
from app.schemas.common import ErrorCode, PagedRequest
from app.schemas.school import SchoolCreate, SchoolUpdate
from app.services.school_service import SchoolService


def school_data(code: str, email: str = None, name: str = None, commune: str = "") -> SchoolCreate:
    return SchoolCreate(
        name=name or f"School {code}",
        code=code,
        email=email or f"{code.lower()}@x.io",
        commune=commune,
    )


@pytest.fixture
def directory(db):
    service = SchoolService(db)
    for code, name, commune in [
        ("ALPHA", "Lycee Alpha", "Yopougon"),
        ("BRAVO", "Ecole Bravo", "Abobo"),
        ("CHARLIE", "College Charlie", "Marcory"),
    ]:
        assert service.create_school(school_data(code, name=name, commune=commune)).success
    return service


class TestCreate:
    def test_create_school(self, db):
        result = SchoolService(db).create_school(school_data("DEMO"))

        assert result.success
        assert result.data.code == "DEMO"
        assert result.data.is_active is True
        assert result.data.school_year

    def test_duplicate_code(self, db):
        service = SchoolService(db)
        service.create_school(school_data("DEMO"))

        result = service.create_school(school_data("DEMO", email="another@x.io"))

        assert result.error_code == ErrorCode.DUPLICATE_TENANT

    def test_duplicate_email(self, db):
        service = SchoolService(db)
        service.create_school(school_data("DEMO"))

        result = service.create_school(school_data("OTHER", email="DEMO@x.io"))

        assert result.error_code == ErrorCode.DUPLICATE_TENANT

    def test_code_of_deleted_school_stays_reserved(self, db):
        service = SchoolService(db)
        created = service.create_school(school_data("DEMO"))
        service.delete_school(created.data.id)

        result = service.create_school(school_data("DEMO", email="new@x.io"))

        assert result.error_code == ErrorCode.DUPLICATE_TENANT

    def test_code_format_enforced(self):
        with pytest.raises(ValueError):
            school_data("demo-1")


class TestUpdate:
    def test_update_fields(self, db, directory):
        alpha = directory.get_school_by_code("ALPHA").data

        result = directory.update_school(alpha.id, SchoolUpdate(name="Lycee Alpha 2", phone="0102030405"))

        assert result.success
        assert result.data.name == "Lycee Alpha 2"
        assert result.data.phone == "0102030405"
        assert result.data.code == "ALPHA"

    def test_update_to_taken_code(self, db, directory):
        alpha = directory.get_school_by_code("ALPHA").data

        result = directory.update_school(alpha.id, SchoolUpdate(code="BRAVO"))

        assert result.error_code == ErrorCode.DUPLICATE_TENANT

    def test_update_keeping_own_email(self, db, directory):
        alpha = directory.get_school_by_code("ALPHA").data

        result = directory.update_school(alpha.id, SchoolUpdate(email="alpha@x.io", commune="Cocody"))

        assert result.success
        assert result.data.commune == "Cocody"

    def test_update_missing_school(self, db):
        result = SchoolService(db).update_school(999, SchoolUpdate(name="Nope"))

        assert result.error_code == ErrorCode.NOT_FOUND


class TestListing:
    def test_default_sort_by_name(self, directory):
        result = directory.list_schools(PagedRequest())

        assert [s.name for s in result.data.items] == ["College Charlie", "Ecole Bravo", "Lycee Alpha"]
        assert result.data.total_count == 3
        assert result.data.total_pages == 1

    def test_sort_by_commune_descending(self, directory):
        result = directory.list_schools(PagedRequest(sort_by="commune", sort_descending=True))

        assert [s.commune for s in result.data.items] == ["Yopougon", "Marcory", "Abobo"]

    def test_sort_by_code(self, directory):
        result = directory.list_schools(PagedRequest(sort_by="code"))

        assert [s.code for s in result.data.items] == ["ALPHA", "BRAVO", "CHARLIE"]

    def test_search_over_name_and_code(self, directory):
        by_name = directory.list_schools(PagedRequest(search="bravo"))
        by_code = directory.list_schools(PagedRequest(search="CHAR"))

        assert [s.code for s in by_name.data.items] == ["BRAVO"]
        assert [s.code for s in by_code.data.items] == ["CHARLIE"]

    def test_paging(self, directory):
        result = directory.list_schools(PagedRequest(page=2, page_size=2))

        assert [s.name for s in result.data.items] == ["Lycee Alpha"]
        assert result.data.total_count == 3
        assert result.data.total_pages == 2

    def test_deleted_schools_excluded(self, directory):
        bravo = directory.get_school_by_code("BRAVO").data
        directory.delete_school(bravo.id)

        result = directory.list_schools(PagedRequest())

        assert "BRAVO" not in [s.code for s in result.data.items]
        assert result.data.total_count == 2


class TestDeleteAndStatus:
    def test_soft_delete_keeps_row(self, db, directory):
        alpha = directory.get_school_by_code("ALPHA").data

        assert directory.delete_school(alpha.id).success

        row = db.get(School, alpha.id)
        assert row is not None and row.is_deleted
        assert directory.get_school(alpha.id).error_code == ErrorCode.NOT_FOUND
        assert directory.get_school_by_code("ALPHA").error_code == ErrorCode.NOT_FOUND
        assert directory.delete_school(alpha.id).error_code == ErrorCode.NOT_FOUND

    def test_toggle_status(self, directory):
        alpha = directory.get_school_by_code("ALPHA").data

        disabled = directory.toggle_school_status(alpha.id)
        assert disabled.data.is_active is False
        assert "ALPHA" not in [s.code for s in directory.list_active_schools()]
        assert directory.find_tenant_by_code("ALPHA") is None

        enabled = directory.toggle_school_status(alpha.id)
        assert enabled.data.is_active is True
        assert directory.find_tenant_by_code("ALPHA") is not None

    def test_active_schools_sorted(self, directory):
        assert [s.code for s in directory.list_active_schools()] == ["CHARLIE", "BRAVO", "ALPHA"]
