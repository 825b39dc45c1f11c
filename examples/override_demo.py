"""
Override Example — Delay a budget shutdown, but only so far.

Walks a month of rising spend through the controller with an operator
override switched on. The override holds the VM up past 100% of budget,
then stops counting once spend reaches MAX_OVERRIDE_RATIO (150%).

Run:
    pip install -e .
    python examples/override_demo.py
"""

from cost_killer import BudgetController, ControllerSettings
from cost_killer.adapters import DryRunComputeClient, InMemoryOverrideStore

# ── Wire the controller with in-process adapters ────────────────────────

settings = ControllerSettings(
    project_id="demo-project",
    zone="us-central1-a",
    instance_name="app-vm",
    max_override_ratio=1.5,
)
store = InMemoryOverrideStore({settings.override_key: True})  # operator override ON
compute = DryRunComputeClient()
controller = BudgetController.from_settings(settings, store=store, client=compute)

print("Override Example")
print("=" * 60)
print()

# ── Spend climbs through the month ──────────────────────────────────────

budget = 100.0
for cost in (40.0, 85.0, 105.0, 130.0, 149.0, 155.0):
    result = controller.handle({"costAmount": cost, "budgetAmount": budget})
    ratio = result.classification.ratio
    line = f"  ${cost:>6.2f} / ${budget:.2f}  ratio {ratio:4.2f}  {result.classification.ratio_class.value:<8}"
    if result.shutdown_attempted:
        line += f"  🛑 stop issued ({result.shutdown.status})"
    elif result.override.active:
        line += "  ⏸  override holding"
    print(line)

print()
print(f"Stop requests recorded: {len(compute.stopped)}")
print("─" * 60)
print("The override delayed the shutdown but could not prevent it.")
