#!/usr/bin/env python3
"""
Loopback example.
Encodes air data from an ICD, sends it through a loopback transport with a
label filter on receiver 1, and decodes what each receiver sees.
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from a429codec.icd import load_icd
from a429codec.transport import LoopbackTransport, build_label_filter, RX_CTRL_LABEL_RECOGNITION
from a429codec.core.encode429 import combine_ssm


def run_loopback():
    """Send one frame of air data through the loopback."""

    print("ARINC 429 Loopback Example")
    print("=" * 50)

    # 1. Load the ICD
    print("\n1. Loading ICD...")
    icd = load_icd(Path(__file__).parent / "icd" / "adc_icd.yaml")
    print(f"   Loaded {len(icd.labels)} labels")

    # 2. Configure receivers: RX0 takes everything, RX1 only altitude and airspeed
    print("\n2. Configuring receivers...")
    transport = LoopbackTransport()
    transport.set_label_filter(1, build_label_filter(['203', '206']))
    transport.set_receive_control(1, RX_CTRL_LABEL_RECOGNITION)

    # 3. Transmit
    print("\n3. Transmitting...")
    values = {
        'baro_altitude': 35000.0,
        'computed_airspeed': 287.5,
        'mach': 0.785,
        'total_air_temp': -21.75,
        'static_air_temp': -54.3,
    }
    for name, value in values.items():
        word = icd.get_label_by_name(name).encode_value(value)
        transport.write_word(word)
        print(f"   {name:18s} {value:>10} -> 0x{word:08X}")

    # 4. Receive and decode
    for channel in (0, 1):
        print(f"\n4.{channel} Receiver {channel}:")
        for word in transport.read_all(channel):
            result = icd.decode_word(word)
            print(f"   0x{word:08X} {result['label']} {result['name']:18s} {result['value']:.4f}")

    # 5. Dual-channel SSM voting
    print("\n5. SSM combination (Normal + No Computed Data):", combine_ssm(3, 1))


if __name__ == "__main__":
    run_loopback()
