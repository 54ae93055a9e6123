# pyglet front end: the window draws the display buffer, maps the keyboard onto
# the hex keypad, plays the buzzer and drives the interpreter from pyglet's clock.
#----------------------------------------------------------------------------------------------
import pyglet
from pyglet.media import synthesis

from . import config
from .cpu import Chip8
from .log import log, log_error, toggle_logging

# Key mapping - maps physical keyboard keys to CHIP-8 keypad
#   1 2 3 C        1 2 3 4
#   4 5 6 D   <-   Q W E R
#   7 8 9 E        A S D F
#   A 0 B F        Z X C V
keymap = {
    pyglet.window.key._1: 0x1,
    pyglet.window.key._2: 0x2,
    pyglet.window.key._3: 0x3,
    pyglet.window.key._4: 0xC,

    pyglet.window.key.Q: 0x4,
    pyglet.window.key.W: 0x5,
    pyglet.window.key.E: 0x6,
    pyglet.window.key.R: 0xD,

    pyglet.window.key.A: 0x7,
    pyglet.window.key.S: 0x8,
    pyglet.window.key.D: 0x9,
    pyglet.window.key.F: 0xE,

    pyglet.window.key.Z: 0xA,
    pyglet.window.key.X: 0x0,
    pyglet.window.key.C: 0xB,
    pyglet.window.key.V: 0xF,
}


def generate_beep(duration=config.beep_duration, frequency=config.beep_frequency,
                  sample_rate=config.sample_rate):
    # Use a Sine waveform from pyglet.media.synthesis
    wave = synthesis.Sine(duration=duration, frequency=frequency, sample_rate=sample_rate)
    return pyglet.media.StaticSource(wave)


class Chip8Window(pyglet.window.Window):
    def __init__(self, chip8=None):
        super().__init__(config.window_width, config.window_height,
                         caption="CHIP-8 Emulator", resizable=False)
        self.chip8 = chip8 if chip8 is not None else Chip8()
        self.has_exit = False

        # ---- Performance Counters ----
        self.fps_label = pyglet.text.Label(
            "FPS: 0.000", font_size=12, x=5, y=config.window_height - 15,
            anchor_x='left', anchor_y='center', color=config.label_colour)
        self.cps_label = pyglet.text.Label(
            "Cycles/s: 0", font_size=12, x=5, y=config.window_height - 30,
            anchor_x='left', anchor_y='center', color=config.label_colour)
        self.cycle_count = 0

        pyglet.clock.schedule_interval(self._update_cps, 1.0)
        pyglet.clock.schedule_interval(self._update_fps, 1.0)

        # Schedule CPU and timer ticks
        pyglet.clock.schedule_interval(self._cpu_tick, 1.0 / config.cpu_hz)
        pyglet.clock.schedule_interval(self._timer_tick, 1.0 / config.timer_hz)

        # Pre-create a pixel image and keep the lit pixels as one batch
        self.pixel = pyglet.image.SolidColorImagePattern(config.pixel_colour).create_image(
            config.scale, config.scale)
        self.batch = pyglet.graphics.Batch()
        self.sprites = []

        self.beep_sound = generate_beep()
        self.beep_player = None

    def _update_fps(self, dt):
        self.fps_label.text = f"FPS: {pyglet.clock.get_frequency():.3f}"

    def _update_cps(self, dt):
        self.cps_label.text = f"Cycles/s: {int(self.cycle_count / dt)}"
        self.cycle_count = 0

    # ---- Input ----
    def on_key_press(self, symbol, modifiers):
        if symbol == pyglet.window.key.ESCAPE:
            self.close()
        elif symbol == pyglet.window.key.F1:
            log("logsOn:", toggle_logging())
        elif symbol in keymap:
            self.chip8.set_key(keymap[symbol], True)

    def on_key_release(self, symbol, modifiers):
        if symbol in keymap:
            self.chip8.set_key(keymap[symbol], False)

    # ---- Drawing ----
    def _rebuild_sprites(self):
        # pyglet's origin is bottom-left, CHIP-8's is top-left
        for sprite in self.sprites:
            sprite.delete()
        self.sprites = []
        for y in range(config.height):
            for x in range(config.width):
                if self.chip8.get_pixel(x, y):
                    self.sprites.append(pyglet.sprite.Sprite(
                        self.pixel, x * config.scale, (config.height - 1 - y) * config.scale,
                        batch=self.batch))

    def on_draw(self):
        if self.chip8.consume_redraw_flag():
            self._rebuild_sprites()
        self.clear()
        self.batch.draw()
        self.fps_label.draw()
        self.cps_label.draw()

    # ---- CPU cycle ----
    def _cpu_tick(self, dt):
        if self.has_exit:
            return
        try:
            self.chip8.step()
            self.cycle_count += 1
        except Exception as e:
            log_error("Emulation error: %s", e)
            self.has_exit = True
            self.close()

    # ---- timers ----
    def _timer_tick(self, dt):
        self.chip8.tick_timers()
        if self.chip8.should_beep():
            # Play beep only if it isn't already playing
            if self.beep_player is None:
                self.beep_player = self.beep_sound.play()
                self.beep_player.loop = True
        elif self.beep_player is not None:
            self.beep_player.pause()
            self.beep_player.delete()
            self.beep_player = None

    def on_close(self):
        pyglet.clock.unschedule(self._cpu_tick)
        pyglet.clock.unschedule(self._timer_tick)
        pyglet.clock.unschedule(self._update_cps)
        pyglet.clock.unschedule(self._update_fps)
        super().on_close()
