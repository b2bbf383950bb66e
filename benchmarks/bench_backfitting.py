import sys
import gc
import time
import pprint
import numpy as np
from sbfit import AdditiveDataGenerator
from sbfit.additive import BackfittingParams, smooth_backfit


def benchmark_backfitting(generator, n, reg_grid, bandwidth, seed, n_jobs=None):
    """Benchmark the smooth_backfit function."""
    gc.collect()  # Clear garbage collector to avoid interference
    X, Y = generator.generate(n, seed)
    start_time = time.time_ns()
    result = smooth_backfit(Y, reg_grid, X, h=bandwidth, params=BackfittingParams(n_jobs=n_jobs))
    elapsed_time = time.time_ns() - start_time
    n_iter = result.n_iter
    del X, Y, result  # Free memory
    return elapsed_time, n_iter


if __name__ == "__main__":
    n = int(2e3)
    d = 4
    num_points = 101
    component_funcs = [
        lambda x: 2.0 * (x - 0.5),
        lambda x: np.sin(2.0 * np.pi * x),
        lambda x: (x - 0.5) ** 2 - 1.0 / 12.0,
        lambda x: np.exp(x) - (np.e - 1.0),
    ]
    generator = AdditiveDataGenerator(component_funcs, correlation=0.5, error_sd=0.1)
    grid = np.linspace(0.0, 1.0, num_points, dtype=np.float64)
    reg_grid = np.tile(grid[:, None], (1, d))
    bandwidth = 0.1
    settings = [None, 2]

    print("Python Information:\n", sys.version)
    np.show_config()

    num_replications = 10
    run_times = dict()
    sweeps = dict()
    for n_jobs in settings:
        run_times[n_jobs] = []
        sweeps[n_jobs] = []
        for i in range(num_replications):
            # Generate a new sample each time to simulate different data
            elapsed_time, n_iter = benchmark_backfitting(generator, n, reg_grid, bandwidth, 42 + i, n_jobs=n_jobs)
            run_times[n_jobs].append(elapsed_time)
            sweeps[n_jobs].append(n_iter)

    for n_jobs in settings:
        # remove fastest and slowest
        run_times_remove = np.sort(run_times[n_jobs])[1:-1]

        print(
            f"Average time (remove fastest and slowest) for {num_replications} replications with sample size {n}, " +
            f"{d} components and {num_points} grid points on smooth_backfit with n_jobs={n_jobs} runs: " +
            f"{np.mean(run_times_remove) / 1e9:.6f} seconds"
        )
        print(f"Standard deviation of run times: {np.std(run_times_remove) / 1e9:.6f} seconds")
        print(f"Average number of sweeps: {np.mean(sweeps[n_jobs]):.1f}")

    for n_jobs, run_time in run_times.items():
        print(f"n_jobs - {n_jobs}, run_time:")
        pprint.pprint(np.array(run_time) / 1e9)
