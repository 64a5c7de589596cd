import logging

from rmi_models.benchmarks.benchmark_runner import Benchmark
from rmi_models.config import ModelConfig
from rmi_models.utils.data_loader import DatasetGenerator, TrainingData


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    config = ModelConfig.from_env().validate()

    print("Learned index model benchmark\n")
    # one exact-line bucket segments in O(n^2), see rmi_models.models.segmentation
    size = 20_000
    print("#"*70)
    print(f"Testing {size:,} keys")
    print("#"*70)

    datasets = {
        f"Sequential ({size:,})": DatasetGenerator.generate_sequential(size).astype("uint64"),
        f"Uint64 ({size:,})": DatasetGenerator.generate_uint64(size, seed=0),
    }
    for name, keys in datasets.items():
        Benchmark.run(name, TrainingData(keys), config=config, save=True)


if __name__ == "__main__":
    main()
