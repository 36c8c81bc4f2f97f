import argparse
import asyncio
import mimetypes
import sys
from pathlib import Path

from tabulate import tabulate

from inventory_sync.config import config
from inventory_sync.core.image_compressor import ImageCompressor
from inventory_sync.core.query_builder import QueryState
from inventory_sync.db import database_adapter, create_all_tables
from inventory_sync.exceptions import InventorySyncError
from inventory_sync.logging_setup import logger, get_logger
from inventory_sync.models import ImageAsset, ReferenceKind, StockForm
from inventory_sync.services.sync_controller import SyncController, ViewModel
from inventory_sync.utils.formatting import format_rupiah, thumbnail_or_placeholder

log = get_logger('cli')

def build_controller(query=None) -> SyncController:
    """Create a controller over the configured backend."""
    return SyncController(database_adapter.tables, database_adapter.storage, query=query)

def render_items(view: ViewModel, show_thumbnails: bool = False) -> str:
    """Render a view model as a text table with a page footer."""
    headers = ['ID', 'Name', 'Category', 'Warehouse', 'Qty', 'Price', 'Value', 'Status']
    if show_thumbnails:
        headers.append('Thumbnail')

    table_data = []
    for item in view.items:
        row = [
            item.id,
            item.name,
            item.category.name or 'N/A',
            item.warehouse.name or 'N/A',
            item.quantity,
            format_rupiah(item.price),
            format_rupiah(item.value),
            str(item.status)
        ]
        if show_thumbnails:
            row.append(thumbnail_or_placeholder(item))
        table_data.append(row)

    table = tabulate(
        table_data,
        headers=headers,
        tablefmt='grid'
    )
    footer = f"Page {view.page} of {max(view.total_pages, 1)} ({view.total_count} items)"
    return f"{table}\n{footer}"

def report(controller: SyncController) -> int:
    if controller.view.error:
        print(f"Error: {controller.view.error}", file=sys.stderr)
        return 1
    return 0

async def list_items(args):
    query = QueryState(
        search_term=args.search or '',
        category_filter=args.category,
        warehouse_filter=args.warehouse,
        page=args.page,
        page_size=args.page_size or config.inventory_config['page_size']
    )
    controller = build_controller(query)
    await controller.load()

    if controller.view.items or not controller.view.error:
        print(render_items(controller.view, args.thumbnails))
    return report(controller)

async def add_reference(args):
    controller = build_controller()
    kind = ReferenceKind.CATEGORY if args.command == 'add-category' else ReferenceKind.WAREHOUSE

    await controller.load()
    controller.dismiss_error()

    if kind is ReferenceKind.CATEGORY:
        entry = await controller.add_category(args.name)
    else:
        entry = await controller.add_warehouse(args.name)

    if entry is not None:
        print(f"Added {kind.value} '{entry.name}' with id {entry.id}")
    return report(controller)

async def attach_image(controller: SyncController, form: StockForm, image_path):
    if not image_path:
        return
    path = Path(image_path)
    form.asset = await controller.prepare_asset(path.name, path.read_bytes(), mimetypes.guess_type(path.name)[0])

async def save_item(args):
    controller = build_controller()
    await controller.load()
    controller.dismiss_error()

    form = StockForm.blank(config.inventory_config['default_threshold'])
    form.id = getattr(args, 'id', None)
    form.name = args.name
    form.quantity = args.quantity
    form.price = args.price
    form.category_id = args.category_id
    form.warehouse_id = args.warehouse_id
    form.thumbnail = args.thumbnail
    if args.threshold is not None:
        form.threshold = args.threshold

    await attach_image(controller, form, args.image)
    if controller.view.error:
        return report(controller)

    if args.command == 'create':
        created = await controller.submit_create(form)
        if created is not None:
            print(f"Created item {created.id} ({created.status})")
    else:
        if await controller.submit_update(args.id, form):
            print(f"Updated item {args.id}")

    return report(controller)

async def delete_item(args):
    controller = build_controller()
    if await controller.submit_delete(args.id):
        print(f"Deleted item {args.id}")
    return report(controller)

def compress_file(args) -> int:
    """Compress a local image the same way uploads are compressed."""
    source = Path(args.input)
    asset = ImageAsset(
        filename=source.name,
        data=source.read_bytes(),
        content_type=mimetypes.guess_type(source.name)[0] or ''
    )

    try:
        result = ImageCompressor().compress(asset, args.max_bytes)
    except InventorySyncError as e:
        log.error(f"Could not compress {source}: {str(e)}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    Path(args.output).write_bytes(result.data)
    print(f"{source.name}: {asset.size} -> {result.size} bytes ({result.content_type})")
    return 0

def positive_int(value):
    """argparse type for page numbers and sizes."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be 1 or greater, got {number}")
    return number

def add_form_arguments(parser, required):
    parser.add_argument('--name', required=True, help='Item name')
    parser.add_argument('--quantity', required=required, default='0', help='Quantity on hand')
    parser.add_argument('--price', required=required, default='0', help='Unit price')
    parser.add_argument('--threshold', required=required, help='Low stock threshold')
    parser.add_argument('--category-id', help='Category id')
    parser.add_argument('--warehouse-id', help='Warehouse id')
    parser.add_argument('--thumbnail', help='Thumbnail URL')
    parser.add_argument('--image', help='Local image to compress and upload as thumbnail')

def build_parser():
    parser = argparse.ArgumentParser(description='Inventory Sync')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    list_parser = subparsers.add_parser('list', help='List stock items')
    list_parser.add_argument('--search', help='Name contains (case-insensitive)')
    list_parser.add_argument('--category', help='Category name')
    list_parser.add_argument('--warehouse', help='Warehouse name')
    list_parser.add_argument('--page', type=positive_int, default=1, help='Page number, starting at 1')
    list_parser.add_argument('--page-size', type=positive_int, help='Rows per page')
    list_parser.add_argument('--thumbnails', action='store_true', help='Show thumbnail URLs')

    for command in ('add-category', 'add-warehouse'):
        reference_parser = subparsers.add_parser(command, help=f"Create a {command.split('-')[1]}")
        reference_parser.add_argument('name')

    create_parser = subparsers.add_parser('create', help='Create a stock item')
    add_form_arguments(create_parser, required=False)

    update_parser = subparsers.add_parser('update', help='Update a stock item')
    update_parser.add_argument('id', type=int)
    add_form_arguments(update_parser, required=True)

    delete_parser = subparsers.add_parser('delete', help='Delete a stock item')
    delete_parser.add_argument('id', type=int)

    compress_parser = subparsers.add_parser('compress', help='Compress a local image')
    compress_parser.add_argument('input')
    compress_parser.add_argument('output')
    compress_parser.add_argument('--max-bytes', type=int, default=config.image_config['max_bytes'])

    subparsers.add_parser('init-db', help='Create tables on the relational backend')

    return parser

def main(argv=None):
    """Main application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logger.app_logger.info(f"Running command: {args.command}")

    if args.command == 'compress':
        return compress_file(args)

    if args.command == 'init-db':
        create_all_tables()
        print("Tables created")
        return 0

    handlers = {
        'list': list_items,
        'add-category': add_reference,
        'add-warehouse': add_reference,
        'create': save_item,
        'update': save_item,
        'delete': delete_item,
    }

    try:
        return asyncio.run(handlers[args.command](args))
    except InventorySyncError as e:
        log.error(f"Command {args.command} failed: {str(e)}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

if __name__ == "__main__":
    sys.exit(main())
