"""Tests for CSV import and export of registrations."""

import csv
import io

import pytest

from academy_admin.services.import_service import ImportService, normalize_header, parse_selections

CSV_CONTENT = """\ufeffFirst Name,Last Name,Email,Birthday,ZIP,Academies (Academy:Level; ...)
Ana,Lopez,ana@example.com,03/15/2015,32801,Korean Language:Beginner; Art Academy
Ben,Carter,ben@example.com,,,Art Academy
,Nameless,nobody@example.com,,,Art Academy
Chloe,Kim,chloe@example.com,,,Robotics
ANA,Lopez,ANA@example.com,,,Korean Language:Alphabet
"""


@pytest.mark.parametrize(
    "header,expected",
    [
        ("First Name", "first_name"),
        ("firstName", "first_name"),
        ("Zip Code", "zip"),
        ("T-Shirt Size", "t_shirt_size"),
        ("Selected Academies", "academies"),
        ("email", "email"),
    ],
)
def test_normalize_header(header, expected):
    assert normalize_header(header) == expected


def test_parse_selections():
    selections = parse_selections("Art Academy; Korean Language:Alphabet ;")
    assert [(s.academy, s.level) for s in selections] == [
        ("Art Academy", None),
        ("Korean Language", "Alphabet"),
    ]
    assert parse_selections(None) == []


@pytest.mark.anyio
class TestImportService:
    async def test_import_counts_and_row_errors(self, db, catalog):
        result = await ImportService().import_registrations(db, CSV_CONTENT, catalog["semester"])

        assert result.total_rows == 5
        assert result.created == 2
        assert result.merged == 1
        assert result.failed == 2
        assert [e.row for e in result.errors] == [4, 5]
        assert "first_name" in result.errors[0].message
        assert "Robotics" in result.errors[1].message

    async def test_export_uses_the_import_layout(self, db, catalog):
        service = ImportService()
        await service.import_registrations(db, CSV_CONTENT, catalog["semester"])

        rows = list(csv.DictReader(io.StringIO(await service.export_registrations(db, catalog["semester"]))))

        assert [r["first_name"] for r in rows] == ["Ben", "ANA"]
        ana = rows[1]
        assert ana["birth_date"] == "2015-03-15"
        assert ana["zip"] == "32801"
        assert sorted(ana["academies"].split("; ")) == ["Art Academy", "Korean Language:Alphabet"]
