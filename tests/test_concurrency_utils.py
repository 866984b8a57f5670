#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for concurrency utility primitives.
"""

import asyncio

from asynccall.core.utils.concurrency import BackgroundTaskGroup, create_loop_future


def test_create_loop_future_binds_to_current_loop():
    async def run_case():
        future = create_loop_future()
        assert future.get_loop() is asyncio.get_running_loop()

    asyncio.run(run_case())


def test_background_task_group_holds_tasks_until_done():
    group = BackgroundTaskGroup()
    results = []

    async def work(value):
        await asyncio.sleep(0)
        results.append(value)

    async def run_case():
        group.spawn(work(1))
        group.spawn(work(2))
        assert len(group) == 2
        await group.drain()
        assert len(group) == 0

    asyncio.run(run_case())

    assert sorted(results) == [1, 2]


def test_background_task_group_reports_failures():
    failures = []
    group = BackgroundTaskGroup(on_error=lambda task, exc: failures.append(exc))

    async def broken():
        raise RuntimeError("dispatch failed")

    async def run_case():
        group.spawn(broken())
        await group.drain()

    asyncio.run(run_case())

    assert len(failures) == 1
    assert str(failures[0]) == "dispatch failed"


def test_background_task_group_drain_waits_for_nested_spawns():
    group = BackgroundTaskGroup()
    order = []

    async def child():
        await asyncio.sleep(0)
        order.append("child")

    async def parent():
        order.append("parent")
        group.spawn(child())

    async def run_case():
        group.spawn(parent())
        await group.drain()

    asyncio.run(run_case())

    assert order == ["parent", "child"]
