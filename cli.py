"""CLI commands for wedding RSVP management."""

import asyncio
import hashlib
import json
import secrets
from pathlib import Path
from uuid import UUID, uuid4

import typer
import uvicorn
from sqlalchemy import select

from src.config.database import async_session_manager
from src.config.settings import settings
from src.guests.dtos import AttendanceRecord, PartyMember, PartyRole
from src.guests.event_config import build_event_config
from src.guests.features.get_guest_info.router import load_party_state
from src.guests.party import party_member_to_dict
from src.guests.repository.orm_models import EventDetails, Guest
from src.guests.repository.read_models import SqlGuestProfileReadModel

app = typer.Typer(help="CLI commands for wedding RSVP management")


def _email_hash(email: str) -> str:
    return hashlib.sha256(email.strip().lower().encode()).hexdigest()


def _rsvp_link(token: str) -> str:
    return f"{settings.frontend_url}/rsvp/?token={token}"


def _build_party(members: list[str], events: list[str]) -> list[dict]:
    party = []
    for index, name in enumerate(members):
        first_name, _, last_name = name.strip().partition(" ")
        if index == 0:
            person_id, role = "primary", PartyRole.PRIMARY
        elif index == 1:
            person_id, role = "companion", PartyRole.COMPANION
        else:
            person_id, role = f"guest-{index}", PartyRole.GUEST
        member = PartyMember(
            person_id=person_id,
            role=role,
            invited_events=tuple(events),
            attendance={event_id: AttendanceRecord() for event_id in events},
            first_name=first_name,
            last_name=last_name,
        )
        party.append(party_member_to_dict(member))
    return party


@app.command()
def seed_event(
    path: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON file with the event details",
    ),
):
    """Store event details; the newest record is the one RSVPs are checked against."""
    try:
        details = json.loads(path.read_text())
    except ValueError as e:
        typer.secho(f"Invalid JSON: {e}", fg=typer.colors.RED)
        raise typer.Exit(1)

    event_config = build_event_config(details)
    if not event_config:
        typer.secho("No events with an id found in the details", fg=typer.colors.RED)
        raise typer.Exit(1)

    async def _seed_event():
        async with async_session_manager() as session:
            session.add(EventDetails(details=details))

    asyncio.run(_seed_event())

    typer.secho("Event details stored!", fg=typer.colors.GREEN)
    for event_id, config in event_config.items():
        meals = ", ".join(sorted(config.meal_options)) if config.meal_options else "free choice"
        label = f"meal required ({meals})" if config.requires_meal_selection else "no meal"
        typer.secho(f"  - {event_id}: {label}", fg=typer.colors.BLUE)


@app.command()
def create_guest(
    email: str = typer.Argument(
        ...,
        help="Email address of the invited guest",
    ),
    members: list[str] = typer.Option(
        ...,
        "--member",
        "-m",
        help="Full name of a party member; the first one is the primary guest",
    ),
    events: list[str] = typer.Option(
        ...,
        "--event",
        "-e",
        help="Event id the party is invited to",
    ),
):
    """Create a guest with a party and print the RSVP link."""
    token = secrets.token_urlsafe(24)
    profile = {"email": email, "party": _build_party(members, events)}

    async def _create_guest():
        async with async_session_manager() as session:
            email_hash = _email_hash(email)
            result = await session.execute(select(Guest).where(Guest.email_hash == email_hash))
            if result.scalar_one_or_none():
                raise ValueError(f"Guest already exists: {email}")

            guest = Guest(uuid=uuid4(), email_hash=email_hash, rsvp_token=token, profile=profile)
            session.add(guest)
            return guest.uuid

    try:
        guest_id = asyncio.run(_create_guest())
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(1)

    typer.secho("Guest created successfully!", fg=typer.colors.GREEN)
    typer.secho(f"  Guest ID: {guest_id}", fg=typer.colors.CYAN)
    typer.secho(f"  Party size: {len(members)}", fg=typer.colors.BLUE)
    typer.secho(f"  RSVP URL: {_rsvp_link(token)}", fg=typer.colors.CYAN)


@app.command()
def show_party(
    guest_id: str = typer.Argument(
        ...,
        help="Guest UUID to show the party for",
    ),
):
    """Show the party, attendance and pending meal choices of a guest."""

    async def _show_party():
        async with async_session_manager() as session:
            result = await session.execute(select(Guest.rsvp_token).where(Guest.uuid == UUID(guest_id)))
            token = result.scalar_one_or_none()
            if token is None:
                raise ValueError(f"Guest not found: {guest_id}")
            return await load_party_state(SqlGuestProfileReadModel(session_overwrite=session), token)

    try:
        state = asyncio.run(_show_party())
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(1)

    typer.secho(f"Party of guest {state.guest_id}", fg=typer.colors.GREEN)
    typer.secho(f"  Last RSVP: {state.submitted_at or 'not submitted'}", fg=typer.colors.BLUE)
    for member in state.party:
        typer.echo()
        typer.secho(
            f"  {member.first_name} {member.last_name} ({member.person_id}, {member.role.value})",
            fg=typer.colors.BLUE,
        )
        for event_id in member.invited_events:
            record = member.attendance[event_id]
            meal = member.meal_selections.get(event_id)
            line = f"    - {event_id}: {record.status.value} (by {record.source.value})"
            if meal:
                line += f", meal: {meal}"
            typer.echo(line)

    if state.pending_meal_events:
        typer.echo()
        typer.secho(
            f"Meal choices pending for: {', '.join(state.pending_meal_events)}",
            fg=typer.colors.YELLOW,
        )


@app.command()
def serve(
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
):
    """Run the API server."""
    uvicorn.run("src.main:app", host=settings.app_host, port=settings.app_port, reload=reload)


if __name__ == "__main__":
    app()
