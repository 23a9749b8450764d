"""
Sample Size and Power Grid Example
==================================

This example sweeps sample size and effect size to map out power, then
finds the smallest sample size reaching 80% power.
"""

import powersim
from powersim.progress import PrintReporter

print("=" * 60)
print("POWER GRID EXAMPLE")
print("=" * 60)

sim = powersim.PowerSim()
sim.set_baseline("n=100, mu=50, sd=10, delta=5, alpha=0.05")
sim.set_seed(7).set_simulations(1000)

# Use all cores for the grid; results are identical to a sequential run
sim.set_parallel(True)

# 1. Power over a grid of sample sizes and effect sizes
print("\n1. POWER GRID (n x delta):")
table = sim.find_power_grid(
    n=range(10, 201, 10),
    delta=[3, 5, 8],
    progress_callback=PrintReporter(),
)

frame = table.to_frame()
print(frame.pivot(index="n", columns="delta", values="power").round(3).to_string())

# 2. First sample size reaching 80% power, per effect size
print("\n2. FIRST n WITH POWER >= 0.80:")
for (delta,), n in table.first_achieved(0.8, along="n").items():
    print(f"   delta={delta}: {n if n is not None else 'not reached in range'}")

# 3. Dedicated sample-size search at the baseline effect
print("\n3. SAMPLE SIZE SEARCH (delta = 5):")
result = sim.find_sample_size(target_power=0.8, from_size=100, to_size=200, by=4)
print(f"   Required n: {result['results']['first_achieved']}")

print("\n" + "=" * 60)
