"""
Entry Replication Example - A Scenario File
=============================================

A scenario file as it is typically written: build the topology, register
scenarios through a counting suite registrar, run, exit with the suite's
exit code.

Three agents run the same app on one conductor. Alice commits an entry;
bob can read it only after alice's call has settled.

Without arguments the conductor is simulated in-process. Pass a URL to
attach to an already running conductor instead:

Usage:
    python examples/entry_replication.py
    python examples/entry_replication.py http://localhost:3000
"""

from __future__ import annotations

import asyncio
import sys

from conductor_harness import Orchestrator, ScenarioSuite, backward_compatibility_middleware
from conductor_harness.core.config import load_config
from conductor_harness.orchestration.executor import AssertionExecutor

app = Orchestrator.dna("dist/app_spec.dna.json", "app-spec")

orchestrator = Orchestrator(
    conductors={"conductor": {"instances": {"alice": app, "bob": app, "carol": app}}},
    executor=AssertionExecutor(),
    middleware=backward_compatibility_middleware,
    config=load_config(),
)

suite = ScenarioSuite(min_expected_scenarios=3)
scenario = suite.registrar(orchestrator)


async def entry_reaches_bob(t, callers):
    alice, bob = callers["alice"], callers["bob"]
    committed = await alice.call_sync(
        "entries", "main", "commit_entry", {"entry": {"title": "hello", "content": "world"}}
    )
    t.ok(committed["Ok"], "commit returned an address")

    seen = await bob.call("entries", "main", "get_entry", {"address": committed["Ok"]})
    t.equal(seen["Ok"], {"title": "hello", "content": "world"})


async def unsettled_read_misses(t, callers):
    alice, carol = callers["alice"], callers["carol"]
    committed, settled = await alice.call_with_promise(
        "entries", "main", "commit_entry", {"entry": {"title": "early"}}
    )
    early = await carol.call("entries", "main", "get_entry", {"address": committed["Ok"]})
    t.equal(early["Ok"], None, "carol must not see the entry before it settled")

    await settled
    late = await carol.call("entries", "main", "get_entry", {"address": committed["Ok"]})
    t.equal(late["Ok"], {"title": "early"})


async def agents_are_distinct(t, callers):
    t.not_equal(callers["alice"].agent_id, callers["bob"].agent_id)
    t.not_equal(callers["bob"].agent_id, callers["carol"].agent_id)


scenario("alice's entry reaches bob", entry_reaches_bob)
scenario("reads before settling miss the entry", unsettled_read_misses)
scenario("every instance has its own agent", agents_are_distinct)


if __name__ == "__main__":
    if len(sys.argv) > 1:
        orchestrator.register_conductor("conductor", sys.argv[1])
    sys.exit(asyncio.run(suite.run()))
