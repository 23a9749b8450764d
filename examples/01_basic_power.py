"""
Basic Power Estimation Example
==============================

This example estimates power for a simple two-arm study: does a new
therapy shift the mean outcome compared with control?
"""

import powersim

# Example: Clinical trial, therapy vs control
# Outcome ~ N(50, 10) in control; therapy expected to add 5 points (d = 0.5)

print("=" * 60)
print("BASIC POWER ESTIMATION EXAMPLE")
print("=" * 60)

# 1. Define the design
sim = powersim.PowerSim()
sim.set_baseline("n=100, mu=50, sd=10, delta=5, alpha=0.05")

# 2. Reproducibility and precision
sim.set_seed(7).set_simulations(2000)

print(f"\nDesign: {sim.baseline}")

# 3. Power at the planned sample size
print("\n1. POWER AT n = 100:")
estimate = sim.find_power()
print(f"   {estimate}")

# 4. Same design, bigger study
print("\n2. POWER AT n = 160:")
print(f"   {sim.find_power(n=160)}")

# 5. Welch's t-test instead of the linear model
print("\n3. WELCH T-TEST AT n = 100:")
welch = powersim.PowerSim(powersim.WelchTTest())
welch.set_baseline(sim.baseline).set_seed(7).set_simulations(2000)
print(f"   {welch.find_power()}")

# 6. Null check: with no effect, power should sit at alpha
print("\n4. TYPE I ERROR CHECK (delta = 0):")
print(f"   {sim.find_power(delta=0)}")

print("\n" + "=" * 60)
print("INTERPRETATION:")
print("• Power >= 0.80 is the usual target")
print("• The interval reflects Monte Carlo error only; add simulations to narrow it")
print("=" * 60)
