#!/usr/bin/env python3
"""
Render extracted palettes as text, HTML and PNG swatch strips.
"""

from html import escape

from PIL import Image, ImageDraw

from color_thief import Swatch


def render(swatches: list[Swatch], fmt: str = 'hex') -> str:
    """Render a palette as one line per color."""
    lines = []
    for i, swatch in enumerate(swatches, 1):
        value = swatch.hex if fmt == 'hex' else f"RGB{swatch.rgb}"
        lines.append(f"{i:2d}. {value}  {swatch.coverage * 100:5.1f}%")
    return "\n".join(lines)


def text_color_for_background(rgb: tuple) -> str:
    """Return black or white text color based on background luminance."""
    r, g, b = rgb
    return "#000" if 0.299 * r + 0.587 * g + 0.114 * b > 128 else "#fff"


def render_html(swatches: list[Swatch], image_path: str) -> str:
    """Render a palette as a standalone HTML page."""
    safe_path = escape(image_path)

    css = """
        * { box-sizing: border-box; margin: 0; padding: 0; }
        body {
            font-family: system-ui, -apple-system, sans-serif;
            background: #f5f5f5;
            color: #333;
            line-height: 1.5;
            padding: 2rem;
            max-width: 900px;
            margin: 0 auto;
        }
        h1 { font-size: 1.5rem; margin-bottom: 0.5rem; }
        .meta { color: #666; font-size: 0.9rem; margin-bottom: 1rem; }
        .palette-strip {
            display: flex;
            height: 80px;
            border-radius: 8px;
            overflow: hidden;
            box-shadow: 0 2px 8px rgba(0,0,0,0.1);
            margin: 1.5rem 0;
        }
        .palette-strip .swatch {
            display: flex;
            align-items: flex-end;
            justify-content: center;
            padding: 0.5rem;
            font-size: 0.7rem;
            font-weight: 500;
        }
        .color-card {
            background: #fff;
            border-radius: 8px;
            padding: 1rem;
            margin-bottom: 1rem;
            box-shadow: 0 1px 3px rgba(0,0,0,0.08);
            display: grid;
            grid-template-columns: 60px 1fr;
            gap: 1rem;
        }
        .color-card .swatch { width: 60px; height: 60px; border-radius: 6px; }
        .color-card .values { font-family: monospace; color: #555; font-size: 0.8rem; }
    """

    strip = []
    cards = []
    for swatch in swatches:
        fg = text_color_for_background(swatch.rgb)
        # Keep tiny colors visible in the strip
        flex = max(swatch.coverage, 0.02)
        strip.append(
            f'<div class="swatch" style="flex: {flex:.4f}; background: #{swatch.hex}; color: {fg}">'
            f'#{swatch.hex}</div>'
        )
        cards.append(
            f'<div class="color-card">'
            f'<div class="swatch" style="background: #{swatch.hex}"></div>'
            f'<div class="info"><div class="values">#{swatch.hex} / RGB{swatch.rgb}</div>'
            f'<div>Coverage: {swatch.coverage * 100:.1f}% ({swatch.population:,} px)</div></div>'
            f'</div>'
        )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Palette: {safe_path}</title>
<style>{css}</style>
</head>
<body>
<h1>Palette</h1>
<div class="meta">{safe_path} &middot; {len(swatches)} colors</div>
<div class="palette-strip">{''.join(strip)}</div>
{''.join(cards)}
</body>
</html>
"""


def visualize_palette(swatches: list[Swatch], output_path: str) -> None:
    """
    Create a swatch image visualizing the palette with coverage percentages.

    Args:
        swatches: Palette entries, in display order
        output_path: Path to save the output image
    """
    swatch_size = 80
    padding = 10
    text_height = 25
    cols = max(1, min(len(swatches), 6))
    rows = max(1, (len(swatches) + cols - 1) // cols)

    img_width = cols * (swatch_size + padding) + padding
    img_height = rows * (swatch_size + text_height + padding) + padding

    img = Image.new('RGB', (img_width, img_height), (240, 240, 240))
    draw = ImageDraw.Draw(img)

    for i, swatch in enumerate(swatches):
        row = i // cols
        col = i % cols

        x = padding + col * (swatch_size + padding)
        y = padding + row * (swatch_size + text_height + padding)

        draw.rectangle([x, y, x + swatch_size, y + swatch_size], fill=tuple(swatch.rgb))

        # Center text under swatch
        text = f"{swatch.coverage * 100:.1f}%"
        bbox = draw.textbbox((0, 0), text)
        text_width = bbox[2] - bbox[0]
        text_x = x + (swatch_size - text_width) // 2
        draw.text((text_x, y + swatch_size + 4), text, fill=(0, 0, 0))

    img.save(output_path)
