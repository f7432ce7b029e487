"""
Bounded-concurrency batch runner shared by the LLM passes and the
embedding fetcher.

Work runs on a ThreadPoolExecutor; results are applied to the items on the
calling thread as futures complete, so the events list is never touched
from two threads at once. Every save_interval completed items (ok or not)
the checkpoint callback fires, which is how a killed run keeps its progress.
"""
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence

from config import SAVE_INTERVAL


def run_batch(items: Sequence,
              task: Callable,
              apply: Callable,
              concurrency: int = 1,
              delay: float = 0.0,
              save_interval: int = SAVE_INTERVAL,
              on_checkpoint: Optional[Callable[[], None]] = None,
              on_error: Optional[Callable] = None,
              on_progress: Optional[Callable[[Dict], None]] = None,
              sleep: Callable[[float], None] = time.sleep) -> Dict:
    """Run task(item) for every item, at most `concurrency` at a time.

    Args:
        task: worker-thread function returning a value for one item
        apply: apply(item, value) on the calling thread; a falsy return
            means the call produced nothing usable (counted as empty); an exception
            from apply cancels the queued tasks and propagates
        delay: seconds each request waits before starting (the first one doesn't)
        on_error: on_error(item, exc) on the calling thread for a failed task

    Returns:
        {"total", "ok", "empty", "errors", "error_messages"}
    """
    stats = {"total": len(items), "ok": 0, "empty": 0, "errors": 0, "error_messages": []}
    if not items:
        return stats

    def _run(index: int, item):
        if index > 0 and delay:
            sleep(delay)
        return task(item)

    completed = 0
    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as executor:
        futures = {executor.submit(_run, i, item): item for i, item in enumerate(items)}
        for future in as_completed(futures):
            item = futures[future]
            try:
                value = future.result()
            except Exception as e:
                stats["errors"] += 1
                stats["error_messages"].append(str(e))
                if on_error is not None:
                    on_error(item, e)
            else:
                try:
                    applied = apply(item, value)
                except Exception:
                    # Queued work is dropped; only already-running tasks are waited on
                    for pending in futures:
                        pending.cancel()
                    raise
                if applied:
                    stats["ok"] += 1
                else:
                    stats["empty"] += 1

            completed += 1
            if on_progress is not None:
                on_progress({"done": completed, **_counts(stats)})
            if on_checkpoint is not None and save_interval and completed % save_interval == 0:
                on_checkpoint()

    return stats


def _counts(stats: Dict) -> Dict:
    return {k: stats[k] for k in ("total", "ok", "empty", "errors")}


def progress_line(progress: Dict) -> str:
    """'  [done/total] ok=N err=N' for the CLIs."""
    return (f"  [{progress['done']}/{progress['total']}] "
            f"ok={progress['ok']} err={progress['errors']}")


def first_errors(stats: Dict, limit: int = 3) -> List[str]:
    return stats["error_messages"][:limit]
