"""
Category Tree CLI Utility

Command-line interface for inspecting and maintaining category data.

Usage Examples:
    # Create the database tables
    category-tree init-db

    # List all category groups
    category-tree list-groups

    # Show the category tree of a group
    category-tree show-tree topics --locale en

    # Complete a selection of category IDs with their ancestors
    category-tree fill-gaps 12 31 7
"""

import argparse
import logging
import sys
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from category_tree.services import build_category_services
from category_tree.services.database import initialize_app_database
from category_tree.services.exceptions import DatabaseError, ServiceError


def init_db() -> int:
    """Create the database and its tables."""
    initialize_app_database()
    print("Database initialized.")
    return 0


def list_groups() -> int:
    """Print every category group."""
    services = build_category_services()
    groups = services.groups.get_all_groups()

    if not groups:
        print("No category groups.")
        return 0

    for group in groups:
        max_levels = group.max_levels or "unlimited"
        locales = ", ".join(group.locales) or "-"
        print(f"{group.id:>4}  {group.handle:<24} {group.name}")
        print(f"      max levels: {max_levels}  locales: {locales}")
        for locale in group.locales.values():
            if group.has_urls:
                print(f"      [{locale.locale}] {locale.url_format} | {locale.nested_url_format or '-'}")
    return 0


def show_tree(handle: str, locale: Optional[str] = None) -> int:
    """Print a group's categories as an indented tree."""
    services = build_category_services()
    group = services.groups.get_group_by_handle(handle)
    if group is None:
        print(f"ERROR: No category group with handle '{handle}'")
        return 1

    categories = services.categories.get_group_categories(group.id, locale=locale)
    print(f"{group.name} ({len(categories)} categories)")
    for category in categories:
        indent = "  " * (category.level or 1)
        uri = f"  /{category.uri}" if category.uri else ""
        print(f"{indent}- [{category.id}] {category.title}{uri}")
    return 0


def fill_gaps(category_ids: List[int]) -> int:
    """Print category IDs completed with their missing ancestors."""
    services = build_category_services()
    result = services.categories.fill_gaps_in_category_ids(category_ids)
    print(" ".join(str(category_id) for category_id in result))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Category group and category tree utility",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Create the database:
    category-tree init-db

  Show a group's tree in German:
    category-tree show-tree topics --locale de
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("list-groups", help="List category groups")

    tree_parser = subparsers.add_parser("show-tree", help="Show a group's category tree")
    tree_parser.add_argument("handle", help="Category group handle")
    tree_parser.add_argument("-l", "--locale", help="Locale to show (default: group's first)")

    gaps_parser = subparsers.add_parser(
        "fill-gaps", help="Add missing ancestors to a list of category IDs"
    )
    gaps_parser.add_argument("ids", nargs="*", type=int, help="Category IDs")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        if args.command == "init-db":
            return init_db()

        initialize_app_database()

        if args.command == "list-groups":
            return list_groups()
        elif args.command == "show-tree":
            return show_tree(args.handle, args.locale)
        elif args.command == "fill-gaps":
            return fill_gaps(args.ids)
        else:
            print(f"Unknown command: {args.command}")
            return 1
    except SQLAlchemyError as e:
        error = DatabaseError("Database operation failed", e)
        print(f"ERROR: {error}")
        return 1
    except ServiceError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
