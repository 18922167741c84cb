"""Command-line interface for storefront."""

import argparse
import json
import sys

from . import __version__
from .catalog import ProductCatalog
from .document_store import DocumentStore
from .errors import StorefrontError
from .logging_config import configure_logging
from .stock_ledger import StockLedger


def cmd_init(args: argparse.Namespace) -> int:
    """Create an empty store."""
    try:
        store = DocumentStore()
        if store.exists() and not args.force:
            print(f"Store already exists at {store.store_path}. Use --force to reset it.", file=sys.stderr)
            return 1
        store.init(force=args.force)
        print(f"Initialized store at {store.store_path}")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_list(args: argparse.Namespace) -> int:
    """List catalog products."""
    try:
        products = ProductCatalog(DocumentStore()).list_products()

        if not products:
            print("No products in the catalog.")
            print("Add one with: storefront products add <title> <price> <stock>")
            return 0

        if args.json:
            data = [p.to_dict() for p in products]
            print(json.dumps(data, indent=2))
        else:
            print(f"Products ({len(products)}):")
            print()
            for p in products:
                print(f"  {p.id[:8]}  {p.title}")
                print(f"           price {p.price}  stock {p.stock}")
                print()

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_add(args: argparse.Namespace) -> int:
    """Add a product."""
    try:
        catalog = ProductCatalog(DocumentStore())
        product = catalog.add_product(
            title=args.title,
            price=args.price,
            stock=args.stock,
            description=args.description,
        )

        print(f"Added product: {product.id}")
        print(f"  Title: {product.title}")
        print(f"  Price: {product.price}")
        print(f"  Stock: {product.stock}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_stock(args: argparse.Namespace) -> int:
    """Show stock and recent movements for a product."""
    try:
        ledger = StockLedger(DocumentStore())
        available = ledger.available(args.product_id)
        print(f"{args.product_id}: {available} in stock")

        movements = ledger.movements(args.product_id)
        if movements:
            print()
            for m in movements[-args.history:]:
                print(f"  {m.created_at}  {m.change:+d}  {m.reason}")

        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_restock(args: argparse.Namespace) -> int:
    """Add units to a product's stock."""
    try:
        product = ProductCatalog(DocumentStore()).restock(args.product_id, args.quantity)
        print(f"Restocked {product.title}: now {product.stock} in stock")
        return 0

    except StorefrontError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        store = DocumentStore()
        if not store.exists():
            print("Warning: store not initialized. Run 'storefront init' first.", file=sys.stderr)
            print("Starting server anyway...", file=sys.stderr)

        print("Starting storefront API server...")
        print(f"Store: {store.store_path}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "storefront.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Cart, checkout and order lifecycle backend.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--log-level", default=None, help="Log level (default: $STOREFRONT_LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init
    init_parser = subparsers.add_parser("init", help="Create an empty store")
    init_parser.add_argument(
        "--force", "-f", action="store_true", help="Reset an existing store"
    )

    # products (subcommand group)
    products_parser = subparsers.add_parser("products", help="Manage catalog products")
    products_subparsers = products_parser.add_subparsers(dest="products_command")

    # products list
    products_list_parser = products_subparsers.add_parser("list", help="List products")
    products_list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # products add
    products_add_parser = products_subparsers.add_parser("add", help="Add a product")
    products_add_parser.add_argument("title", help="Product title")
    products_add_parser.add_argument("price", help="Unit price, e.g. 19.99")
    products_add_parser.add_argument("stock", type=int, help="Initial stock")
    products_add_parser.add_argument("--description", "-d", help="Description")

    # stock
    stock_parser = subparsers.add_parser("stock", help="Show a product's stock")
    stock_parser.add_argument("product_id", help="Product ID")
    stock_parser.add_argument(
        "--history", type=int, default=10, help="Number of movements to show (default: 10)"
    )

    # restock
    restock_parser = subparsers.add_parser("restock", help="Add units to a product's stock")
    restock_parser.add_argument("product_id", help="Product ID")
    restock_parser.add_argument("quantity", type=int, help="Units to add")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return 0

    # Handle products subcommands
    if args.command == "products":
        if not getattr(args, "products_command", None):
            parser.parse_args(["products", "--help"])
            return 0
        if args.products_command == "list":
            return cmd_products_list(args)
        elif args.products_command == "add":
            return cmd_products_add(args)

    commands = {
        "init": cmd_init,
        "stock": cmd_stock,
        "restock": cmd_restock,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
