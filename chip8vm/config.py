# ---- Configuration ----
scale = 10
width, height = 64, 32
window_width, window_height = width * scale, height * scale
cpu_hz = 700
timer_hz = 60

# ---- Beep ----
beep_frequency = 440
beep_duration = 0.2
sample_rate = 44100

# ---- Colours (RGBA) ----
pixel_colour = (255, 255, 255, 255)
label_colour = (0, 255, 0, 255)
