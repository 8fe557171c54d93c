"""
Recipe Box command-line interface.

Usage Examples:
    # Add the two demo recipes
    recipebox add-sample

    # Show a recipe
    recipebox show 1

    # Search
    recipebox search --keywords spaghetti
    recipebox search --tag italian --tag dinner --exact-author Nonna
    recipebox search --cook-time 25 35 --exclude-tag italian

    # Merge another collection into this one
    recipebox merge friends_recipes.db

    # Use a specific database file
    recipebox --db ./recipes.db show 1
"""

import argparse
import logging
import sys

from recipebox.services.database import empty_collection, open_collection
from recipebox.services.dto import RecipeData, RecipeIngredientData
from recipebox.services.exceptions import ServiceError
from recipebox.services.merge_service import merge_collection
from recipebox.services.recipe_service import add_recipe, delete_recipe, get_recipe
from recipebox.services.search_service import SearchCriteria, search_recipes
from recipebox.utils.config import get_config

logger = logging.getLogger(__name__)


def sample_recipes():
    """The demo recipes added by `add-sample`."""
    pancakes = RecipeData(
        name="Classic Pancakes",
        description="Fluffy and delicious pancakes, a breakfast favorite.",
        prep_time_minutes=10,
        cook_time_minutes=15,
        servings=4,
        is_favorite=True,
        source="Family Recipe",
        source_url="http://example.com/pancakes",
        author="Mom",
        ingredients=[
            RecipeIngredientData("All-purpose flour", 1.5, "cups"),
            RecipeIngredientData("Granulated sugar", 2, "tablespoons", "or to taste"),
            RecipeIngredientData("Baking powder", 2, "teaspoons"),
            RecipeIngredientData("Salt", 0.5, "teaspoon"),
            RecipeIngredientData("Milk", 1.25, "cups", "whole milk recommended"),
            RecipeIngredientData("Egg", 1, "large"),
            RecipeIngredientData("Melted butter", 3, "tablespoons", "plus more for griddle"),
            RecipeIngredientData("Vanilla extract", 1, "teaspoon", "optional", optional=True),
        ],
        tags=["breakfast", "easy", "classic", "sweet"],
        instructions=[
            "In a large bowl, whisk together flour, sugar, baking powder, and salt.",
            "In a separate bowl, whisk together milk, egg, and melted butter "
            "(and vanilla if using).",
            "Pour the wet ingredients into the dry ingredients and stir until just "
            "combined (do not overmix; a few lumps are okay).",
            "Heat a lightly oiled griddle or frying pan over medium-high heat.",
            "Pour or scoop the batter onto the griddle, using approximately 1/4 cup "
            "for each pancake.",
            "Cook for about 2-3 minutes per side, or until golden brown and cooked "
            "through. Flip when bubbles appear on the surface.",
            "Serve warm with your favorite toppings like maple syrup, fruit, or "
            "whipped cream.",
        ],
    )
    spaghetti = RecipeData(
        name="Spaghetti Aglio e Olio",
        description="A simple yet delicious Italian pasta dish with garlic and oil.",
        prep_time_minutes=5,
        cook_time_minutes=10,
        servings=2,
        source="Italian tradition",
        author="Nonna",
        ingredients=[
            RecipeIngredientData("Spaghetti", 200, "grams"),
            RecipeIngredientData("Garlic", 4, "cloves", "thinly sliced"),
            RecipeIngredientData("Olive oil", 0.25, "cup", "extra virgin"),
            RecipeIngredientData("Red pepper flakes", 0.5, "teaspoon", "or to taste", optional=True),
            RecipeIngredientData("Fresh parsley", 0.25, "cup", "chopped"),
            RecipeIngredientData("Salt", 1, "pinch", "to taste"),
        ],
        tags=["pasta", "italian", "quick", "garlic"],
        instructions=[
            "Cook spaghetti according to package directions until al dente.",
            "Reserve about 1/2 cup of pasta water before draining.",
            "While pasta cooks, heat olive oil in a large skillet over medium-low heat.",
            "Add garlic and red pepper flakes (if using). Cook until garlic is golden, "
            "about 1-2 minutes. Do not burn.",
            "Drain pasta and add it directly to the skillet with the garlic and oil.",
            "Toss to combine. Add a splash of reserved pasta water if needed to create "
            "a light sauce.",
            "Stir in fresh parsley and season with salt to taste.",
            "Serve immediately.",
        ],
    )
    return [pancakes, spaghetti]


def format_recipe(recipe: RecipeData) -> str:
    """Render a recipe as plain text."""
    lines = [f"[{recipe.id}] {recipe.name}"]
    if recipe.description:
        lines.append(f"  {recipe.description}")
    lines.append(
        f"  Prep: {recipe.prep_time_minutes} min | Cook: {recipe.cook_time_minutes} min"
        f" | Servings: {recipe.servings}{' | Favorite' if recipe.is_favorite else ''}"
    )
    if recipe.author:
        lines.append(f"  Author: {recipe.author}")
    if recipe.source or recipe.source_url:
        lines.append(f"  Source: {' '.join(s for s in (recipe.source, recipe.source_url) if s)}")
    if recipe.date_added:
        lines.append(f"  Added: {recipe.date_added:%Y-%m-%d}")
    if recipe.tags:
        lines.append(f"  Tags: {', '.join(recipe.tags)}")

    lines.append("  Ingredients:")
    for ing in recipe.ingredients:
        amount = "" if ing.quantity < 0 else f"{ing.quantity:g} {ing.unit} ".replace("  ", " ")
        notes = f" ({ing.notes})" if ing.notes else ""
        optional = " [optional]" if ing.optional else ""
        lines.append(f"    - {amount}{ing.name}{notes}{optional}")

    lines.append("  Instructions:")
    for number, step in enumerate(recipe.instructions, start=1):
        lines.append(f"    {number}. {step}")
    return "\n".join(lines)


# ============================================================================
# Commands
# ============================================================================


def add_sample_cmd(collection) -> int:
    for recipe in sample_recipes():
        recipe_id = add_recipe(collection, recipe)
        print(f"Added '{recipe.name}' with ID {recipe_id}")
    return 0


def show_cmd(collection, recipe_id: int) -> int:
    print(format_recipe(get_recipe(collection, recipe_id)))
    return 0


def delete_cmd(collection, recipe_id: int) -> int:
    delete_recipe(collection, recipe_id)
    print(f"Deleted recipe {recipe_id}")
    return 0


def search_cmd(collection, args) -> int:
    criteria = SearchCriteria(
        keywords=args.keywords or "",
        name=args.name or "",
        author=args.author or "",
        exact_name=args.exact_name or "",
        exact_author=args.exact_author or "",
        prep_time_range=args.prep_time or (),
        cook_time_range=args.cook_time or (),
        servings_range=args.servings or (),
        is_favorite=args.favorite,
        date_range=args.date_range or (),
        ingredients=args.ingredient or [],
        exclude_ingredients=args.exclude_ingredient or [],
        tags=args.tag or [],
        exclude_tags=args.exclude_tag or [],
    )
    recipe_ids = search_recipes(collection, criteria)
    if not recipe_ids:
        print("No matching recipes")
        return 0

    print(f"Found {len(recipe_ids)} recipe(s):")
    for recipe_id in recipe_ids:
        print(f"  [{recipe_id}] {get_recipe(collection, recipe_id).name}")
    return 0


def merge_cmd(collection, source_path: str) -> int:
    print(f"Merging {source_path}...")
    result = merge_collection(collection, source_path)
    print(f"  Recipes added: {result.recipes_added}")
    print(f"  Duplicates found: {result.duplicates_found}")
    print(f"  Ingredients added: {result.ingredients_added}")
    print(f"  Tags added: {result.tags_added}")
    print(f"  Tag links added to existing recipes: {result.tag_links_added}")
    return 0


def empty_cmd(collection, confirmed: bool) -> int:
    if not confirmed:
        print("ERROR: Refusing to empty the collection without --yes")
        return 1
    empty_collection(collection)
    print("Collection emptied")
    return 0


# ============================================================================
# Entry Point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recipebox",
        description="Manage a personal recipe collection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Add the demo recipes:
    recipebox add-sample

  Find Italian dinners by Nonna:
    recipebox search --tag italian --tag dinner --exact-author Nonna

  Merge a friend's collection:
    recipebox merge friends_recipes.db
""",
    )
    parser.add_argument("--db", dest="db_path", help="Database file (default: configured path)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("add-sample", help="Add two demo recipes")

    show_parser = subparsers.add_parser("show", help="Show one recipe")
    show_parser.add_argument("recipe_id", type=int, help="Recipe ID")

    delete_parser = subparsers.add_parser("delete", help="Delete one recipe")
    delete_parser.add_argument("recipe_id", type=int, help="Recipe ID")

    search_parser = subparsers.add_parser("search", help="Search recipes")
    search_parser.add_argument("--keywords", help="Words matched anywhere")
    search_parser.add_argument("--name", help="Words matched in the recipe name")
    search_parser.add_argument("--author", help="Words matched in the author")
    search_parser.add_argument("--exact-name", help="Exact recipe name")
    search_parser.add_argument("--exact-author", help="Exact author")
    search_parser.add_argument(
        "--ingredient", action="append", help="Required ingredient (repeatable)"
    )
    search_parser.add_argument(
        "--exclude-ingredient", action="append", help="Excluded ingredient (repeatable)"
    )
    search_parser.add_argument("--tag", action="append", help="Required tag (repeatable)")
    search_parser.add_argument("--exclude-tag", action="append", help="Excluded tag (repeatable)")
    for flag, label in (
        ("--prep-time", "Prep time in minutes"),
        ("--cook-time", "Cook time in minutes"),
        ("--servings", "Servings"),
    ):
        search_parser.add_argument(
            flag, nargs=2, type=int, metavar=("LO", "HI"), help=f"{label}, inclusive range"
        )
    search_parser.add_argument("--favorite", action="store_true", help="Favorites only")
    search_parser.add_argument(
        "--date-range", nargs=2, metavar=("FROM", "TO"), help="Date added, YYYY-MM-DD"
    )

    merge_parser = subparsers.add_parser("merge", help="Merge another collection into this one")
    merge_parser.add_argument("source_path", help="Collection file to merge from")

    empty_parser = subparsers.add_parser("empty", help="Delete every recipe")
    empty_parser.add_argument("--yes", action="store_true", help="Confirm emptying")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    if args.db_path is None:
        logger.info(f"Using configured database {get_config().database_path}")

    try:
        collection = open_collection(args.db_path)
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1

    try:
        if args.command == "add-sample":
            return add_sample_cmd(collection)
        elif args.command == "show":
            return show_cmd(collection, args.recipe_id)
        elif args.command == "delete":
            return delete_cmd(collection, args.recipe_id)
        elif args.command == "search":
            return search_cmd(collection, args)
        elif args.command == "merge":
            return merge_cmd(collection, args.source_path)
        elif args.command == "empty":
            return empty_cmd(collection, args.yes)
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1
    finally:
        collection.close()


if __name__ == "__main__":
    sys.exit(main())
