from typing import Annotated, Optional
import logging

import typer
from googleapiclient.errors import HttpError

from ..cache import build_key
from ..directory import Building, CalendarResource, RESOURCE_TYPES
from ..errors import ValidationError
from .common import AppContext, get_context, handle_errors

logger = logging.getLogger(__name__)

app = typer.Typer(help="Manage bookable calendar resources such as rooms.", no_args_is_help=True)

HEADERS = ["Name", "Email", "ID", "Type", "Building", "Floor", "Capacity", "Description"]
LIST_TYPES = ["all"] + list(RESOURCE_TYPES)
HINTS = ["resource does not exist", "insufficient permissions"]


def _building_names() -> dict[str, str]:
    """Building ID to name; buildings only decorate the listing so failures are not fatal."""
    try:
        return {b.buildingId: b.buildingName for b in Building.list() if b.buildingId}
    except HttpError as e:
        logger.warning("could not retrieve buildings: %s", e)
        return {}


def _matches(resource: CalendarResource, resource_type: str) -> bool:
    if resource_type == "all":
        return True
    if resource_type == "other":
        return resource.resourceType not in ["ROOM", "EQUIPMENT"]
    return resource.resourceType == RESOURCE_TYPES[resource_type]


def _row(resource: CalendarResource, buildings: dict[str, str]) -> dict:
    building = resource.buildingId or ""
    if building and buildings.get(building):
        building = f"{buildings[building]} ({building})"
    return {"Name": resource.resourceName, "Email": resource.resourceEmail, "ID": resource.resourceId,
            "Type": resource.resourceType, "Building": building, "Floor": resource.floorName,
            "Capacity": resource.capacity, "Description": resource.resourceDescription}


def _show_resource(app_ctx: AppContext, action: str, resource: CalendarResource) -> None:
    if app_ctx.formatter.structured:
        app_ctx.echo(resource)
        return
    app_ctx.note(f"Successfully {action} calendar resource:\n")
    lines = [("Name", resource.resourceName), ("Email", resource.resourceEmail), ("ID", resource.resourceId),
             ("Type", resource.resourceType), ("Description", resource.resourceDescription),
             ("Category", resource.resourceCategory), ("Building ID", resource.buildingId),
             ("Floor", resource.floorName), ("Floor Section", resource.floorSection),
             ("Capacity", resource.capacity), ("User Visible Description", resource.userVisibleDescription)]
    for label, value in lines:
        if value:
            typer.echo(f"  {label}: {value}")


@app.command("list")
@handle_errors("list calendar resources", ["insufficient permissions"])
def list_cmd(
    ctx: typer.Context,
    resource_type: Annotated[str, typer.Option("--type", "-t", help="all, room, equipment or other")] = "all",
) -> None:
    """List calendar resources with their building."""
    app_ctx = get_context(ctx)
    resource_type = resource_type.lower()
    if resource_type not in LIST_TYPES:
        raise ValidationError(f"invalid resource type: {resource_type} ({', '.join(LIST_TYPES)})")
    key = build_key("resources", app_ctx.domain or "my_customer")
    data = app_ctx.cached(key, lambda: [r.trim() for r in CalendarResource.list()])
    resources = [r for r in (CalendarResource.from_response(d) for d in data) if _matches(r, resource_type)]
    if app_ctx.formatter.structured:
        app_ctx.echo(resources)
        return
    if not resources:
        app_ctx.note(f"No calendar resources found matching type: {resource_type}")
        return
    buildings = _building_names()
    app_ctx.note(f"Found {len(resources)} calendar resource(s):\n")
    app_ctx.echo([_row(r, buildings) for r in resources], HEADERS)


@app.command("create")
@handle_errors("create calendar resource", ["resource ID already exists", "building ID does not exist",
                                            "insufficient permissions"])
def create(
    ctx: typer.Context,
    resource_id: Annotated[str, typer.Argument(help="unique resource ID")],
    name: Annotated[str, typer.Option("--name", "-n", help="resource name")],
    resource_type: Annotated[str, typer.Option("--type", "-t", help="room, equipment or other")] = "room",
    description: Annotated[str, typer.Option("--description", "-d", help="resource description")] = "",
    category: Annotated[str, typer.Option("--category", "-c", help="resource category")] = "",
    building_id: Annotated[str, typer.Option("--building-id", "-b", help="building the resource is in")] = "",
    floor: Annotated[str, typer.Option("--floor", "-f", help="floor name or number")] = "",
    section: Annotated[str, typer.Option("--section", "-s", help="floor section")] = "",
    capacity: Annotated[int, typer.Option("--capacity", help="capacity, for rooms")] = 0,
    user_description: Annotated[str, typer.Option("--user-description", help="user-visible description")] = "",
) -> None:
    """Create a room, piece of equipment or other bookable resource."""
    app_ctx = get_context(ctx)
    api_type = RESOURCE_TYPES.get(resource_type.lower())
    if api_type is None:
        raise ValidationError(f"invalid resource type '{resource_type}'. Must be: room, equipment, or other")
    if capacity < 0:
        raise ValidationError(f"capacity can't be negative: {capacity}")
    resource = CalendarResource(resourceId=resource_id, resourceName=name, resourceType=api_type,
                                resourceDescription=description or None, resourceCategory=category or None,
                                buildingId=building_id or None, floorName=floor or None,
                                floorSection=section or None, capacity=capacity or None,
                                userVisibleDescription=user_description or None)
    _show_resource(app_ctx, "created", CalendarResource.insert(resource))


@app.command("update")
@handle_errors("update calendar resource", HINTS)
def update(
    ctx: typer.Context,
    resource_id: Annotated[str, typer.Argument(help="resource to update")],
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="resource name")] = None,
    description: Annotated[Optional[str], typer.Option("--description", "-d", help="resource description")] = None,
    category: Annotated[Optional[str], typer.Option("--category", "-c", help="resource category")] = None,
    building_id: Annotated[Optional[str], typer.Option("--building-id", "-b", help="building the resource is in")] = None,
    floor: Annotated[Optional[str], typer.Option("--floor", "-f", help="floor name or number")] = None,
    section: Annotated[Optional[str], typer.Option("--section", "-s", help="floor section")] = None,
    capacity: Annotated[Optional[int], typer.Option("--capacity", help="capacity, for rooms")] = None,
    user_description: Annotated[Optional[str], typer.Option("--user-description", help="user-visible description")] = None,
) -> None:
    """Change only the given fields of a resource."""
    app_ctx = get_context(ctx)
    changes = {"resourceName": name, "resourceDescription": description, "resourceCategory": category,
               "buildingId": building_id, "floorName": floor, "floorSection": section, "capacity": capacity,
               "userVisibleDescription": user_description}
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        raise ValidationError("no update fields specified", ["see --help for the fields that can be changed"])
    if changes.get("capacity", 0) < 0:
        raise ValidationError(f"capacity can't be negative: {capacity}")
    resource = CalendarResource.get(resource_id)
    resource.update_fields(**changes)
    _show_resource(app_ctx, "updated", CalendarResource.update(resource))


@app.command("delete")
@handle_errors("delete calendar resource", HINTS + ["resource is referenced by existing bookings"])
def delete(
    ctx: typer.Context,
    resource_id: Annotated[str, typer.Argument(help="resource to delete")],
    force: Annotated[bool, typer.Option("--force", help="confirm the deletion")] = False,
) -> None:
    """Delete a calendar resource.  This cannot be undone."""
    app_ctx = get_context(ctx)
    app_ctx.confirm(force, f"delete calendar resource {resource_id}")
    CalendarResource.delete(resource_id)
    app_ctx.note(f"Successfully deleted calendar resource: {resource_id}")
