"""Generate an example showfile to see what the format looks like."""

import sys
sys.path.insert(0, str(__import__("pathlib").Path(__file__).parent.parent))

from magicq import parse
from magicq.data import Version

SHOW = (
    "\\ MagicQ Show File\r\n"
    "\\ File version 1.9.3.7\r\n"
    "\r\n"
    'V,007d,"MagicQ 1",01090307,0000,0002,;\r\n'
    'T,"Venue","Main Hall",0001,\r\n'
    '"Designer","",0000,;\r\n'
    "\r\n"
    'L,0001,"Dimmer",00ff,1.000000,-nan,\r\n'
    '0002,"Spot 575",FFFFFFFFFFFFFFFF,0.500000,nan;\r\n'
    'Z,"not a known code yet";\r\n'
)

show = parse(SHOW)

# Write the example
output = str(__import__("pathlib").Path(__file__).parent / "demo.shw")
nbytes = show.write(output)
print(f"Generated {output} ({nbytes} bytes)")

version = Version.from_showfile(show)
print(f"Product {version.product!r}, software {version.software_version}")

# Also print the raw content so you can see the format
print()
print("=" * 60)
print("RAW SHOWFILE CONTENTS:")
print("=" * 60)
print()
print(show.to_text().replace("\r\n", "\n"))
