"""
===============================================================================
MODEL BENCHMARKS
===============================================================================
Build/predict timing and memory for each model family, plus a bounded
last-mile lookup for the models whose output can drive one:

  -learned_fib: binary search inside [pred - err - 1, pred + err + 1]
  -radix_table: binary search between the key's hint and the next slot's hint

Usage:
    python -m rmi_models.benchmarks.benchmark_runner
===============================================================================
"""

import bisect
import re
import time

import numpy as np

from rmi_models.config import ModelConfig
from rmi_models.models import ModelKind, train_model
from rmi_models.utils.data_loader import DatasetGenerator, TrainingData


class Benchmark:
    """Benchmark tool for learned-index models."""

    @staticmethod
    def measure_build_time(kind, data: TrainingData, config: ModelConfig):
        start = time.perf_counter()
        model = train_model(kind, data, config)
        end = time.perf_counter()
        return model, (end - start) * 1000  # ms

    @staticmethod
    def measure_predict_time(model, queries: np.ndarray) -> float:
        # Warmup
        for q in queries[:50]:
            model.predict_to_int(q)
        start = time.perf_counter()
        for q in queries:
            model.predict_to_int(q)
        end = time.perf_counter()
        return (end - start) * 1e9 / max(1, len(queries))  # ns per query

    @staticmethod
    def search_window(model, key, n: int):
        """[left, right) range of the sorted array that must hold `key`."""
        if model.kind is ModelKind.RADIX_TABLE:
            size = model.hint_table.shape[0]
            slot = model.slot(key)
            left = min(int(model.hint_table[slot]), n)
            # len(table) in the next slot means "search to the end"
            nxt = slot + 1
            if nxt >= size or model.hint_table[nxt] == size:
                return left, n
            return left, min(max(int(model.hint_table[nxt]), left), n)
        pred = model.predict_to_int(key)
        err = model.error_bound() or 0
        return max(0, pred - err - 1), min(n, pred + err + 2)

    @staticmethod
    def count_hits(model, keys: np.ndarray, queries: np.ndarray) -> int:
        n = len(keys)
        hits = 0
        for q in queries:
            left, right = Benchmark.search_window(model, q, n)
            idx = bisect.bisect_left(keys, q, left, right)
            if idx < n and keys[idx] == q:
                hits += 1
        return hits

    @staticmethod
    def slug(name: str) -> str:
        """Directory-safe form of a dataset name."""
        return re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_").lower() or "dataset"

    @staticmethod
    def run(dataset_name: str, data: TrainingData, num_queries: int = 1000,
            config: ModelConfig = None, seed: int = 0, save: bool = False) -> dict:
        """Benchmark every model family; with `save`, the learned_fib model is
        written under config.model_dir/<dataset slug>."""
        config = config or ModelConfig()
        keys = data.keys
        print(f"\n{'='*70}")
        print(f"Dataset: {dataset_name}  ({len(keys):,} keys)")
        print(f"{'='*70}")

        # Query set: half existing, half random in-range
        rng = np.random.default_rng(seed)
        existing = rng.choice(keys, num_queries // 2)
        randoms = rng.uniform(float(keys.min()), float(keys.max()), num_queries // 2)
        queries = np.concatenate([existing, randoms.astype(keys.dtype)])
        rng.shuffle(queries)
        present = int(np.isin(queries, keys).sum())

        results = {}
        for kind in ModelKind:
            model, build = Benchmark.measure_build_time(kind, data, config)
            lookup = Benchmark.measure_predict_time(model, queries)
            mem = model.get_memory_usage() / (1024 * 1024)
            row = {
                "build_ms": build,
                "predict_ns": lookup,
                "memory_mb": mem,
                "error_bound": model.error_bound(),
                "present": present,
            }
            line = (f"{model.function_name():<12} | Build: {build:>8.2f} ms | "
                    f"Predict: {lookup:>8.2f} ns | Mem: {mem:>6.3f} MB")

            if model.kind is not ModelKind.RADIX:
                hits = Benchmark.count_hits(model, keys, queries)
                row["hits"] = hits
                line += f" | Hits: {hits}/{present}"
            if model.error_bound() is not None:
                line += f" | Max error: {model.error_bound()}"

            if save and model.kind is ModelKind.PREFIX_BUCKETED:
                out_dir = config.model_dir / Benchmark.slug(dataset_name)
                row["saved"] = model.save(out_dir)
                line += f" | Saved: {out_dir}"

            print(line)
            results[model.function_name()] = row
        return results


if __name__ == "__main__":
    n = 50_000  # number of keys to test
    data = TrainingData(DatasetGenerator.generate_uint64(n, seed=0))
    Benchmark.run("Uint64_50k", data)
