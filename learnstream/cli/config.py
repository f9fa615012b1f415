# ==============================================================================
# Config Commands
# ==============================================================================
"""
Configuration commands for the learnstream CLI.
"""

import json
from typing import Annotated

import typer

from learnstream.cli.shared import C, I, fail
from learnstream.core.errors import AggregationError


# ==============================================================================
# Commands
# ==============================================================================


def config_show(
    json_output: Annotated[
        bool, typer.Option("--json", "-j", help="Output configuration as JSON")
    ] = False,
) -> None:
    """Display current configuration (includes secrets in JSON mode)."""
    from learnstream.publisher import load_settings

    try:
        settings = load_settings()
    except AggregationError as e:
        fail(e, json_output)

    # JSON output mode
    if json_output:
        print(json.dumps(settings.model_dump(mode="json"), indent=2))
        return

    # Human-readable output
    print()
    print(f"{C.BOLD}Configuration{C.RESET}")
    print()

    # Event store
    print(f"{C.CYAN}Event Store{C.RESET}")
    print(f"  Backend:    {C.WHITE}{settings.store.backend}{C.RESET}")
    if settings.store.backend == "csv":
        print(f"  Views:      {C.WHITE}{settings.store.views_file}{C.RESET}")
        print(f"  Searches:   {C.WHITE}{settings.store.searches_file}{C.RESET}")
        print(f"  Catalog:    {C.WHITE}{settings.store.catalog_file}{C.RESET}")
    else:
        print(f"  Host:       {C.WHITE}{settings.postgres.host}:{settings.postgres.port}{C.RESET}")
        print(f"  Database:   {C.WHITE}{settings.postgres.database}{C.RESET}")
        print(f"  Schema:     {C.WHITE}{settings.postgres.schema_name}{C.RESET}")
        print(f"  User:       {C.WHITE}{settings.postgres.user}{C.RESET}")
        print(f"  SSL:        {C.WHITE}{settings.postgres.sslmode}{C.RESET}")
    print()

    # Valkey
    print(f"{C.CYAN}Valkey Cache{C.RESET}")
    cache_status = "enabled" if settings.valkey.cache_enabled else "disabled"
    print(f"  Status:     {C.WHITE}{cache_status}{C.RESET}")
    print(f"  Host:       {C.WHITE}{settings.valkey.host}:{settings.valkey.port}{C.RESET}")
    print(f"  TTL:        {C.WHITE}{settings.valkey.cache_ttl_seconds}s{C.RESET}")
    if settings.valkey.cache_enabled:
        from learnstream.infrastructure.cache import ValkeyCache

        cache = ValkeyCache(settings.valkey.url)
        try:
            reachable = cache.ping()
        finally:
            cache.close()
        if reachable:
            print(f"  Reachable:  {C.BRIGHT_GREEN}{I.CHECK} yes{C.RESET}")
        else:
            print(
                f"  Reachable:  {C.BRIGHT_RED}{I.CROSS} no (reads go to the event store){C.RESET}"
            )
    print()

    # Engines
    print(f"{C.CYAN}Sessions{C.RESET}")
    print(f"  Timeout:    {C.WHITE}{settings.session.inactivity_minutes} minutes{C.RESET}")
    print()

    print(f"{C.CYAN}Journeys{C.RESET}")
    print(f"  Path steps: {C.WHITE}{settings.paths.max_steps}{C.RESET}")
    print(f"  Min length: {C.WHITE}{settings.paths.min_path_length}{C.RESET}")
    print(f"  Completion: {C.WHITE}>{settings.paths.completion_threshold_seconds:g}s{C.RESET}")
    print(f"  Window:     {C.WHITE}{settings.paths.lookback_days} days{C.RESET}")
    print()

    t = settings.trending
    print(f"{C.CYAN}Trending{C.RESET}")
    print(f"  Window:     {C.WHITE}{t.lookback_hours} hours{C.RESET}")
    print(
        f"  Weights:    {C.WHITE}views {t.weight_views:g}, unique {t.weight_unique:g}, "
        f"velocity {t.weight_velocity:g}{C.RESET}"
    )
    print(f"  Velocity:   {C.WHITE}[{t.velocity_min:g}, {t.velocity_max:g}]{C.RESET}")
    print()

    print(f"{C.CYAN}Search Quality{C.RESET}")
    print(f"  Window:     {C.WHITE}{settings.search.lookback_days} days{C.RESET}")
    print()

    e = settings.engagement
    print(f"{C.CYAN}Engagement{C.RESET}")
    print(
        f"  Content:    {C.WHITE}{e.performance_lookback_days} days, "
        f"top {e.performance_limit}{C.RESET}"
    )
    print(f"  Overview:   {C.WHITE}{e.overview_hours} hours{C.RESET}")
    print(
        f"  Thresholds: {C.WHITE}engaged >{e.engaged_seconds:g}s, "
        f"completed >{e.completion_seconds:g}s, converted >{e.conversion_seconds:g}s{C.RESET}"
    )
    print()

    p = settings.progress
    tiers = ", ".join(f">={seconds:g}s:{pct}%" for seconds, pct in p.tiers)
    print(f"{C.CYAN}Progress{C.RESET}")
    print(f"  Tiers:      {C.WHITE}{tiers}, >0s:{p.any_view_percentage}%{C.RESET}")
    print(f"  Completed:  {C.WHITE}{p.completion_percentage}%{C.RESET}")
    print(f"  Window:     {C.WHITE}{p.lookback_days} days{C.RESET}")
    print()
