#!/usr/bin/env python3
"""
Seed script to generate a large task graph for performance testing.

Generates a layered DAG with realistic project structure:
- Multiple parallel tracks
- Diamond patterns (convergence points)
- A few tasks with fixed due dates

Usage:
    python -m scripts.seed [--nodes 500] [--clear] [--reschedule] [--benchmark]

Options:
    --nodes N      Number of tasks to generate (default: 500)
    --clear        Clear existing data before seeding
    --project      Name of the project to create
    --reschedule   Recalculate the whole project in-process after seeding
    --benchmark    Time a due-date edit on a root task and its cascade
"""

import argparse
import asyncio
import random
import time
import uuid
from datetime import date, timedelta

from sqlalchemy import delete

from ripple.database import async_session_maker, init_db
from ripple.models import Project, Task, Dependency
from ripple.services.recalc import reschedule_all
from ripple.services.scheduling import edit_task_dates
from ripple.services.store import apply_batch, load_snapshot


async def clear_data():
    """Clear all existing data."""
    print("Clearing existing data...")
    async with async_session_maker() as session:
        await session.execute(delete(Dependency))
        await session.execute(delete(Task))
        await session.execute(delete(Project))
        await session.commit()
    print("Data cleared.")


async def create_project(name: str) -> Project:
    """Create a project for the tasks."""
    async with async_session_maker() as session:
        project = Project(name=name, description="Performance test project")
        session.add(project)
        await session.commit()
        await session.refresh(project)
        return project


def generate_dag(
    project_id: uuid.UUID,
    num_nodes: int = 500,
) -> tuple[list[Task], list[Dependency]]:
    """
    Generate tasks in "waves"; each wave depends on 1-3 tasks from the
    previous three waves. Every task starts on the same day so that a
    reschedule has real work to do.
    """
    tasks: list[Task] = []
    dependencies: list[Dependency] = []
    edges: set[tuple[uuid.UUID, uuid.UUID]] = set()

    num_waves = max(10, num_nodes // 50)
    tasks_per_wave = max(1, num_nodes // num_waves)
    start_date = date(2025, 1, 1)

    print(f"Generating {num_nodes} tasks in {num_waves} waves...")

    waves: list[list[Task]] = []
    for wave in range(num_waves):
        wave_size = num_nodes - len(tasks) if wave == num_waves - 1 else tasks_per_wave
        wave_tasks = []

        for i in range(wave_size):
            duration = random.randint(1, 10)
            task = Task(
                title=f"Task W{wave:02d}-{i:03d}",
                description=f"Wave {wave}, Task {i}",
                start_date=start_date,
                due_date=start_date + timedelta(days=duration - 1),
                duration_days=duration,
                is_due_date_fixed=random.random() < 0.05,
                project_id=project_id,
            )
            tasks.append(task)
            wave_tasks.append(task)
        waves.append(wave_tasks)

        if wave == 0:
            continue

        recent = list(range(max(0, wave - 3), wave))
        for task in wave_tasks:
            for _ in range(random.randint(1, 3)):
                dep_task = random.choice(waves[random.choice(recent)])
                if (dep_task.id, task.id) in edges:
                    continue
                edges.add((dep_task.id, task.id))
                dependencies.append(Dependency(predecessor_id=dep_task.id, successor_id=task.id))

    return tasks, dependencies


async def insert_batch(tasks: list[Task], dependencies: list[Dependency]):
    """Insert tasks and dependencies in batches for performance."""
    batch_size = 100
    async with async_session_maker() as session:
        print(f"Inserting {len(tasks)} tasks...")
        for i in range(0, len(tasks), batch_size):
            session.add_all(tasks[i:i + batch_size])
            await session.flush()

        print(f"Inserting {len(dependencies)} dependencies...")
        for i in range(0, len(dependencies), batch_size):
            session.add_all(dependencies[i:i + batch_size])
            await session.flush()

        await session.commit()


async def reschedule(project_id: uuid.UUID):
    """Recalculate every task and report how long computing and writing took."""
    async with async_session_maker() as session:
        loaded = await load_snapshot(session, project_id)

        start_time = time.time()
        batch = reschedule_all(loaded.snapshot)
        compute_time = time.time() - start_time

        await apply_batch(session, loaded, batch)
        await session.commit()
        total_time = time.time() - start_time

    print(f"\n=== Reschedule ===")
    print(f"Updates:      {len(batch)}")
    print(f"Compute time: {compute_time * 1000:.2f}ms")
    print(f"Total time:   {total_time * 1000:.2f}ms")


async def run_benchmark(project_id: uuid.UUID):
    """Push a root task's due date back a week and measure the cascade."""
    async with async_session_maker() as session:
        loaded = await load_snapshot(session, project_id)
        snapshot = loaded.snapshot

        roots = [task for task in snapshot if not task.depends_on_task_ids and task.due_date]
        if not roots:
            print("No root tasks found!")
            return
        root = max(roots, key=lambda task: len(snapshot.dependent_ids(task.id)))

        print(f"\n=== Benchmark: delaying root task {root.title} ===")

        start_time = time.time()
        batch = edit_task_dates(snapshot, root.id, {"due_date": root.due_date + timedelta(days=7)})
        compute_time = time.time() - start_time

        await apply_batch(session, loaded, batch)
        await session.commit()
        total_time = time.time() - start_time

    print(f"Cascaded updates: {len(batch) - 1}")
    print(f"Compute time:     {compute_time * 1000:.2f}ms")
    print(f"Total time:       {total_time * 1000:.2f}ms")


async def get_stats(project_id: uuid.UUID):
    """Print statistics about the generated graph."""
    async with async_session_maker() as session:
        snapshot = (await load_snapshot(session, project_id)).snapshot

    num_tasks = len(snapshot)
    num_deps = snapshot.graph.number_of_edges()
    num_roots = sum(1 for task in snapshot if not task.depends_on_task_ids)
    num_leaves = sum(1 for task in snapshot if not snapshot.dependent_ids(task.id))
    avg_deps = num_deps / num_tasks if num_tasks > 0 else 0

    print(f"\n=== Graph Statistics ===")
    print(f"Tasks:        {num_tasks}")
    print(f"Dependencies: {num_deps}")
    print(f"Root tasks:   {num_roots} (no dependencies)")
    print(f"Leaf tasks:   {num_leaves} (no dependents)")
    print(f"Avg deps/task: {avg_deps:.2f}")


async def main():
    parser = argparse.ArgumentParser(description="Seed the database with a large task graph")
    parser.add_argument("--nodes", type=int, default=500, help="Number of tasks to create")
    parser.add_argument("--clear", action="store_true", help="Clear existing data first")
    parser.add_argument("--project", type=str, default="Performance Test", help="Project name")
    parser.add_argument("--reschedule", action="store_true", help="Reschedule the project after seeding")
    parser.add_argument("--benchmark", action="store_true", help="Run benchmark after seeding")

    args = parser.parse_args()

    print(f"=== Ripple Seed Script ===")

    await init_db()

    if args.clear:
        await clear_data()

    project = await create_project(args.project)
    print(f"Created project: {project.name} ({project.id})")

    start_time = time.time()
    tasks, dependencies = generate_dag(project.id, args.nodes)
    print(f"Generation time: {time.time() - start_time:.2f}s")

    start_time = time.time()
    await insert_batch(tasks, dependencies)
    print(f"Insert time: {time.time() - start_time:.2f}s")

    await get_stats(project.id)

    if args.reschedule:
        await reschedule(project.id)

    if args.benchmark:
        await run_benchmark(project.id)

    print(f"\n=== Seeding Complete ===")
    print(f"Project ID: {project.id}")


if __name__ == "__main__":
    asyncio.run(main())
