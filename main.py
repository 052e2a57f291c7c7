# main.py
"""
Headless driver for the motion core.

This script stands in for the rendering layer during development:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Builds the SimulationWorld.
4. Ticks it for a fixed number of frames, firing a camera impulse and a
   swarm explosion now and then the way performance triggers would.
5. Logs a performance profile and shuts down.
"""
import logging
from utils import setup_logging, load_config
import numpy as np
import cProfile
import pstats
import io

def main():
    """
    The main function to run the simulation headlessly.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config('config.json')
    except Exception as e:
        print(f"FATAL: Could not load config.json. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Motion Core Starting ---")

    run_params = config.get('run_control', {})

    from simulation import SimulationWorld

    world = SimulationWorld(config)

    profiler = cProfile.Profile()

    log_throttle = run_params.get('log_throttle_steps', 100)
    max_steps = run_params.get('max_steps', 1000)
    delta_time = run_params.get('delta_time', 1.0 / 60.0)
    impulse_every = run_params.get('impulse_every_steps', 240)
    explosion_every = run_params.get('explosion_every_steps', 600)

    profiler.enable()
    for step_num in range(1, max_steps + 1):
        world.tick(delta_time)

        if impulse_every and world.cameras and step_num % impulse_every == 0:
            handle = int(world.rng.integers(len(world.cameras)))
            kind = world.apply_impulse(handle)
            logging.debug(f"Step {step_num} | Camera {handle} impulse: {kind}")

        if explosion_every and step_num % explosion_every == 0:
            pushed = world.trigger_explosion(
                world.rng.uniform(-200.0, 200.0, size=3), radius=800.0, strength=40.0
            )
            logging.debug(f"Step {step_num} | Explosion pushed {pushed} bodies")

        # Hot loops must throttle logs
        if step_num % log_throttle == 0:
            logging.info(f"Simulation step {step_num}/{max_steps}")

            velocities = world.particles.velocities[world.particles.alive]
            avg_velocity = np.mean(np.linalg.norm(velocities, axis=1)) if len(velocities) else 0.0
            logging.debug(
                f"Step {step_num} | Average Velocity: {avg_velocity:.4f} | "
                f"Contacts: {world.resolver.last_contact_count} | "
                f"Modulation: {world.modulation()}"
            )
    profiler.disable()

    logging.info(f"Reached max_steps ({max_steps}). Stopping simulation.")

    logging.info("--- Performance Profile ---")
    s = io.StringIO()
    # Sort by cumulative time spent in the function
    stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
    stats.print_stats(20)
    logging.info(f"\n{s.getvalue()}")

    logging.info("--- Motion Core Shutting Down ---")


if __name__ == "__main__":
    main()
