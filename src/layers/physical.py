import math
import random
from config import *


class PhysicalLayer:
    def __init__(self, bit_rate, prop_delay=0.0, error_model=True, seed=None):
        """
        Initializes one transmission medium.
        A different seed gives a different error distribution; wired media
        pass error_model=False and never corrupt frames.
        """
        self.rng = random.Random(seed)
        self.bit_rate = bit_rate
        self.prop_delay = prop_delay
        self.error_model = error_model

        # Initially the channel is in 'GOOD' state
        self.current_state = "GOOD"

        self.p_gb = P_G_TO_B
        self.p_bg = P_B_TO_G
        self.ber_good = BER_GOOD
        self.ber_bad = BER_BAD

    def _update_state(self):
        """
        Gilbert-Elliot State Transition: Updates the channel state after each frame transmission.
        """
        r = self.rng.random()
        if self.current_state == "GOOD":
            if r < self.p_gb:
                self.current_state = "BAD"
        else:
            if r < self.p_bg:
                self.current_state = "GOOD"

    def tx_time(self, frame_size_bytes, bit_rate=None):
        """Serialization time of a frame at the given (or nominal) rate."""
        return (frame_size_bytes * 8) / (bit_rate or self.bit_rate)

    def calculate_delay(self, frame_size_bytes, distance=None, bit_rate=None):
        """
        Total Delay = Transmission Delay + Propagation Delay + Processing Delay
        """
        tx_delay = self.tx_time(frame_size_bytes, bit_rate)

        # Wired media carry a fixed delay, wireless ones the flight time
        if distance is None:
            prop_delay = self.prop_delay
        else:
            prop_delay = distance / SPEED_OF_LIGHT

        return tx_delay + prop_delay + PROCESSING_DELAY

    def check_error(self, frame_size_bytes, error_scale=1.0):
        """
        Determines whether the frame is corrupted according to the Gilbert-Elliot model.
        error_scale stretches the BER for faster, less robust modulations.
        """
        if not self.error_model:
            return False

        self._update_state()

        ber = self.ber_good if self.current_state == "GOOD" else self.ber_bad
        ber = min(1.0, ber * error_scale)

        num_bits = frame_size_bytes * 8

        # Probability of the frame reaching error-free: P_success = (1 - BER)^N
        p_success = (1 - ber) ** num_bits

        return self.rng.random() > p_success


def distance(a, b):
    return math.dist(a, b)
