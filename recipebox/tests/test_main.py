"""Tests for the command-line interface."""

import pytest

from recipebox import main as cli
from recipebox.services import recipe_service
from recipebox.services.database import Collection


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.db")


def _run(db_path, *args):
    return cli.main(["--db", db_path, *args])


class TestCli:
    """Tests for recipebox.main.main()."""

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_add_sample_then_show(self, db_path, capsys):
        assert _run(db_path, "add-sample") == 0
        assert "Added 'Classic Pancakes' with ID 1" in capsys.readouterr().out

        assert _run(db_path, "show", "2") == 0
        out = capsys.readouterr().out
        assert "[2] Spaghetti Aglio e Olio" in out
        assert "Author: Nonna" in out
        assert "1. Cook spaghetti according to package directions until al dente." in out
        assert "[optional]" in out

    def test_search(self, db_path, capsys):
        _run(db_path, "add-sample")
        capsys.readouterr()

        assert _run(db_path, "search", "--tag", "italian", "--exact-author", "Nonna") == 0
        out = capsys.readouterr().out
        assert "Found 1 recipe(s)" in out
        assert "[2] Spaghetti Aglio e Olio" in out

        assert _run(db_path, "search", "--keywords", "lasagna") == 0
        assert "No matching recipes" in capsys.readouterr().out

    def test_search_ranges_and_favorites(self, db_path, capsys):
        _run(db_path, "add-sample")
        capsys.readouterr()

        assert _run(db_path, "search", "--cook-time", "12", "20", "--favorite") == 0
        assert "[1] Classic Pancakes" in capsys.readouterr().out

    def test_search_bad_date_fails(self, db_path, capsys):
        assert _run(db_path, "search", "--date-range", "soon", "later") == 1
        assert "ERROR: Validation failed" in capsys.readouterr().out

    def test_delete(self, db_path, capsys):
        _run(db_path, "add-sample")
        assert _run(db_path, "delete", "1") == 0
        assert _run(db_path, "show", "1") == 1
        assert "Recipe with ID 1 not found" in capsys.readouterr().out

    def test_merge(self, db_path, tmp_path, capsys):
        source_path = str(tmp_path / "source.db")
        _run(source_path, "add-sample")
        _run(db_path, "add-sample")
        capsys.readouterr()

        assert _run(db_path, "merge", source_path) == 0
        out = capsys.readouterr().out
        assert "Recipes added: 0" in out
        assert "Duplicates found: 2" in out

    def test_empty_requires_confirmation(self, db_path, capsys):
        _run(db_path, "add-sample")
        assert _run(db_path, "empty") == 1

        assert _run(db_path, "empty", "--yes") == 0
        with Collection(db_path) as collection:
            assert recipe_service.get_recipe_count(collection) == 0

    def test_sample_recipes_are_valid(self, collection):
        for recipe in cli.sample_recipes():
            recipe_service.add_recipe(collection, recipe)
        assert recipe_service.get_recipe_count(collection) == 2
