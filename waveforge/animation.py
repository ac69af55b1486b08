"""Mapping wall-clock time onto the animation loop."""

import time

MIN_LOOP_DURATION = 0.1


def loop_phase(elapsed_seconds, speed=1.0, loop_duration=10.0):
    """Normalized position in the loop, in [0, 1).

    Args:
        elapsed_seconds: Wall-clock time since playback started.
        speed: Playback speed multiplier.
        loop_duration: Length of one loop in seconds (clamped to 0.1 s).
    """
    loop_duration = max(float(loop_duration), MIN_LOOP_DURATION)
    position = (elapsed_seconds * speed) % loop_duration
    phase = position / loop_duration
    # Float division can land exactly on 1.0 for positions just below the end
    return 0.0 if phase >= 1.0 else phase


def frame_phases(frame_count):
    """Evenly spaced loop-phases for ``frame_count`` exported frames.

    The last frame stops one step short of 1.0, so playing the frames in a
    cycle never repeats the first one.
    """
    frame_count = max(1, int(frame_count))
    return [i / frame_count for i in range(frame_count)]


class AnimationClock:
    """Play/pause clock driving a live preview.

    Time is read from ``clock`` (``time.perf_counter`` by default) and
    scaled by ``speed``. Pausing freezes the loop-phase; playing again
    continues from it.
    """

    def __init__(self, loop_duration=10.0, speed=1.0, clock=time.perf_counter):
        self.loop_duration = max(float(loop_duration), MIN_LOOP_DURATION)
        self._speed = float(speed)
        self._clock = clock
        self._offset = 0.0  # scaled seconds accumulated before the last play
        self._started = clock()
        self.playing = True

    @property
    def speed(self):
        return self._speed

    @speed.setter
    def speed(self, value):
        # Rebase so the phase does not jump
        self._offset = self._scaled_seconds()
        self._started = self._clock()
        self._speed = float(value)

    def _scaled_seconds(self):
        if not self.playing:
            return self._offset
        return self._offset + (self._clock() - self._started) * self._speed

    def play(self):
        if not self.playing:
            self._started = self._clock()
            self.playing = True

    def pause(self):
        if self.playing:
            self._offset = self._scaled_seconds()
            self.playing = False

    def toggle(self):
        if self.playing:
            self.pause()
        else:
            self.play()
        return self.playing

    def reset(self):
        self._offset = 0.0
        self._started = self._clock()

    def seconds(self):
        """Current position within the loop, in seconds."""
        return self._scaled_seconds() % self.loop_duration

    def phase(self):
        return loop_phase(self._scaled_seconds(), 1.0, self.loop_duration)
