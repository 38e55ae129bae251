#!/usr/bin/env python3
"""SmartChef command line.

Usage:
    python chef.py generate "eggs, flour, milk" --meal-type breakfast
    python chef.py generate "chicken, rice" --surprise --max-time 30 --diet "gluten-free"
    python chef.py list [--favorites]
    python chef.py show <recipe-id> [--save-image card.png]
    python chef.py favorite <recipe-id>
    python chef.py remove <recipe-id>
    python chef.py ask <recipe-id> "Can I use oat milk instead?"
    python chef.py chat <recipe-id>
    python chef.py detect images/fridge.jpg
    python chef.py enrich <recipe-id>
    python chef.py challenge
    python chef.py prefs [--cuisine Italian --language Spanish ...]

Recipes are saved for the current user (Supabase session, or LOCAL_USER_ID with
the local SQLite database). Errors are printed and exit with status 1.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from smartchef.app.factory import SmartChefApp, initialize_app
from smartchef.models.models import Recipe, UserPreferences
from smartchef.utils.errors import OrchestrationFailure, SmartChefError, ValidationFailure
from smartchef.utils.images import decode_data_uri, detect_mime_type, to_data_uri
from smartchef.utils.logger import logger
from smartchef.utils.notices import NoticeLevel

console = Console()

NOTICE_STYLES = {
    NoticeLevel.INFO: "cyan",
    NoticeLevel.SUCCESS: "green",
    NoticeLevel.ERROR: "red",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chef", description="AI recipe generation from your ingredients")
    commands = parser.add_subparsers(dest="command", required=True)

    generate = commands.add_parser("generate", help="Generate and save a recipe")
    generate.add_argument("ingredients", help="Comma-separated ingredients you have")
    generate.add_argument("--cuisine")
    generate.add_argument("--meal-type")
    generate.add_argument("--diet", dest="dietary_restrictions", help="Dietary restrictions (strict)")
    generate.add_argument("--language")
    generate.add_argument("--surprise", action="store_true", help="Favor novelty over cuisine/meal type")
    generate.add_argument("--max-time", type=int, dest="max_cooking_time_minutes", help="Minutes (soft limit)")
    generate.add_argument("--no-wait", action="store_true", help="Do not wait for nutrition and image")

    listing = commands.add_parser("list", help="List saved recipes, newest first")
    listing.add_argument("--favorites", action="store_true")

    show = commands.add_parser("show", help="Show one recipe")
    show.add_argument("recipe_id")
    show.add_argument("--save-image", metavar="PATH", help="Write the recipe image to a file")

    for name, text in (("favorite", "Toggle favorite"), ("remove", "Delete a recipe"), ("enrich", "Add missing nutrition/image")):
        sub = commands.add_parser(name, help=text)
        sub.add_argument("recipe_id")

    ask = commands.add_parser("ask", help="Ask one question about a recipe")
    ask.add_argument("recipe_id")
    ask.add_argument("question")

    chat = commands.add_parser("chat", help="Interactive Q&A about a recipe")
    chat.add_argument("recipe_id")

    detect = commands.add_parser("detect", help="Detect ingredients in a photo")
    detect.add_argument("image_path")

    commands.add_parser("challenge", help="Generate a weekly cooking challenge")

    prefs = commands.add_parser("prefs", help="Show or update default preferences")
    prefs.add_argument("--cuisine")
    prefs.add_argument("--meal-type")
    prefs.add_argument("--diet", dest="dietary_restrictions")
    prefs.add_argument("--language")

    return parser


def print_notices(app: SmartChefApp) -> None:
    for notice in app.notices.drain():
        style = NOTICE_STYLES.get(notice.level, "white")
        console.print(f"[{style}]• {notice.title}[/{style}] [dim]{notice.description}[/dim]")


def print_recipe(recipe: Recipe) -> None:
    console.print(Markdown(recipe.to_markdown()))
    if recipe.image_url:
        if recipe.image_url.startswith("data:"):
            console.print(f"[dim]Image: ready ({len(recipe.image_url) / 1024:.1f} KB data URI)[/dim]")
        else:
            console.print(f"[dim]Image: {recipe.image_url}[/dim]")
    else:
        console.print("[dim]Image: pending[/dim]")
    console.print(f"[dim]id: {recipe.id} · created {recipe.created_at:%Y-%m-%d %H:%M}[/dim]")


def require_recipe(app: SmartChefApp, recipe_id: str) -> Recipe:
    recipe = app.store.get(recipe_id)
    if recipe is None:
        raise ValidationFailure("recipe_id", f"no saved recipe with id '{recipe_id}'")
    return recipe


async def cmd_generate(app: SmartChefApp, args: argparse.Namespace) -> None:
    # Saved preferences fill in whatever was not given on the command line
    prefs = app.store.preferences or UserPreferences()
    request = {
        "ingredients": args.ingredients,
        "cuisine": args.cuisine or prefs.cuisine,
        "meal_type": args.meal_type or prefs.meal_type,
        "dietary_restrictions": args.dietary_restrictions or prefs.dietary_restrictions,
        "language": args.language or prefs.language,
        "surprise_me": args.surprise,
        "max_cooking_time_minutes": args.max_cooking_time_minutes,
    }

    with console.status("Generating recipe..."):
        try:
            recipe = await app.orchestrator.generate(request)
        except OrchestrationFailure as e:
            if e.draft is not None:
                console.print("[yellow]Recipe generated but not saved:[/yellow]")
                console.print(f"[bold]{e.draft.title}[/bold]")
            raise

    if not args.no_wait:
        with console.status("Analyzing nutrition and creating image..."):
            await app.orchestrator.drain()
        recipe = app.orchestrator.displayed_recipe or recipe
    print_recipe(recipe)


def cmd_list(app: SmartChefApp, args: argparse.Namespace) -> None:
    recipes = app.store.favorites if args.favorites else app.store.history
    if not recipes:
        console.print("[yellow]No favorite recipes yet.[/yellow]" if args.favorites else "[yellow]No recipes yet.[/yellow]")
        return

    table = Table(title="Favorites" if args.favorites else "Recipe History")
    table.add_column("id", style="dim", no_wrap=True)
    table.add_column("title", style="bold")
    table.add_column("★")
    table.add_column("nutrition")
    table.add_column("image")
    table.add_column("created")
    for recipe in recipes:
        table.add_row(
            recipe.id,
            recipe.title,
            "★" if recipe.is_favorite else "",
            recipe.nutrition_state.value,
            recipe.image_state.value,
            f"{recipe.created_at:%Y-%m-%d %H:%M}",
        )
    console.print(table)


def cmd_show(app: SmartChefApp, args: argparse.Namespace) -> None:
    recipe = require_recipe(app, args.recipe_id)
    print_recipe(recipe)
    if args.save_image:
        if not recipe.image_url or not recipe.image_url.startswith("data:"):
            raise ValidationFailure("image_url", "this recipe has no embedded image")
        _, image_bytes = decode_data_uri(recipe.image_url, field="image_url")
        Path(args.save_image).write_bytes(image_bytes)
        console.print(f"[green]✓ Image written to {args.save_image}[/green]")


async def cmd_ask(app: SmartChefApp, args: argparse.Namespace) -> None:
    session = app.chat(require_recipe(app, args.recipe_id))
    with console.status("Thinking..."):
        answer = await session.ask(args.question)
    console.print(Markdown(answer))


async def cmd_chat(app: SmartChefApp, args: argparse.Namespace) -> None:
    recipe = require_recipe(app, args.recipe_id)
    session = app.chat(recipe)
    console.print(f"[bold cyan]Ask about {recipe.title}[/bold cyan] [dim](empty line to quit)[/dim]")
    while True:
        question = console.input("[bold]you> [/bold]").strip()
        if not question:
            break
        with console.status("Thinking..."):
            answer = await session.ask(question)
        console.print(Markdown(answer))


async def cmd_detect(app: SmartChefApp, args: argparse.Namespace) -> None:
    path = Path(args.image_path)
    if not path.exists():
        raise ValidationFailure("image_path", f"file not found: {args.image_path}")
    image_bytes = path.read_bytes()
    data_uri = to_data_uri(image_bytes, detect_mime_type(image_bytes) or "application/octet-stream")
    logger.info(f"Loaded image: {path.name} ({len(image_bytes) / 1024:.1f} KB)")

    with console.status("Scanning for ingredients..."):
        result = await app.gateway.detect_ingredients(data_uri)

    if not result.ingredients:
        console.print(
            "[yellow]No Ingredients Found.[/yellow] The AI could not identify any distinct food "
            "ingredients in the image. Try a clearer photo."
        )
        return
    console.print(f"[green]Ingredients Detected![/green] Found {len(result.ingredients)} ingredient(s).")
    console.print(", ".join(result.ingredients))
    if result.image_description:
        console.print(f"[dim]{result.image_description}[/dim]")


async def cmd_challenge(app: SmartChefApp, args: argparse.Namespace) -> None:
    with console.status("Designing this week's challenge..."):
        challenge = await app.gateway.generate_cooking_challenge()
    lines = [f"# {challenge.title}", "", challenge.description, "", "## Rules"]
    lines += [f"- {rule}" for rule in challenge.constraints]
    if challenge.example_dish:
        lines += ["", f"*Example: {challenge.example_dish}*"]
    console.print(Markdown("\n".join(lines)))


async def cmd_prefs(app: SmartChefApp, args: argparse.Namespace) -> None:
    updates = {
        key: getattr(args, key)
        for key in ("cuisine", "meal_type", "dietary_restrictions", "language")
        if getattr(args, key) is not None
    }
    prefs = app.store.preferences or UserPreferences()
    if updates:
        prefs = await app.store.save_preferences(prefs.model_copy(update=updates))
    console.print_json(data=prefs.model_dump(by_alias=True))


async def run_command(args: argparse.Namespace) -> None:
    app = await initialize_app()
    try:
        if args.command == "generate":
            await cmd_generate(app, args)
        elif args.command == "list":
            cmd_list(app, args)
        elif args.command == "show":
            cmd_show(app, args)
        elif args.command == "favorite":
            recipe = await app.store.toggle_favorite(args.recipe_id)
            console.print(f"{'★' if recipe.is_favorite else '☆'} {recipe.title}")
        elif args.command == "remove":
            await app.store.remove(args.recipe_id)
        elif args.command == "ask":
            await cmd_ask(app, args)
        elif args.command == "chat":
            await cmd_chat(app, args)
        elif args.command == "detect":
            await cmd_detect(app, args)
        elif args.command == "enrich":
            with console.status("Enriching recipe..."):
                recipe = await app.orchestrator.enrich(args.recipe_id)
            print_recipe(recipe)
        elif args.command == "challenge":
            await cmd_challenge(app, args)
        elif args.command == "prefs":
            await cmd_prefs(app, args)
    finally:
        await app.aclose()
        print_notices(app)


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return 0
    except SmartChefError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        return 1
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
