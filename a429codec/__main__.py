"""
CLI entry point for a429codec.

This module provides the command-line interface for building, splitting and
inspecting ARINC 429 words, and for checking label ICD files.
"""

import logging
import sys
import time
import click
import yaml
from pathlib import Path

from .config import get_config, format_word, OUTPUT_FORMATS
from .core.encode429 import (
    NOSDI, OVERFLOW_MODES, build_bnr_word, split_bnr_word,
    build_float_word, split_float_word, combine_ssm, word_fields,
)
from .core.labels import label_to_wire, wire_to_label, parse_label, format_label
from .icd import load_icd, validate_icd_file
from .transport import LoopbackTransport, build_label_filter, RX_CTRL_LABEL_RECOGNITION

logger = logging.getLogger(__name__)


class WordType(click.ParamType):
    """32-bit word given as hex (0x), binary (0b), octal (0o) or decimal."""
    name = 'word'

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            word = value
        else:
            try:
                word = int(value.replace('_', ''), 0)
            except ValueError:
                self.fail(f"'{value}' is not a valid integer", param, ctx)
        if not (0 <= word <= 0xFFFFFFFF):
            self.fail(f"{value} is not a 32-bit unsigned word", param, ctx)
        return word


class LabelType(click.ParamType):
    """Label in octal notation (000-377)."""
    name = 'label'

    def convert(self, value, param, ctx):
        try:
            return parse_label(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


WORD = WordType()
LABEL = LabelType()


def _fail(message: str, error: Exception, verbose: bool) -> None:
    """Report a command failure and exit with status 1."""
    click.echo(f"[ERROR] {message}: {error}", err=True)
    if verbose:
        import traceback
        click.echo(f"\nDetailed error information:", err=True)
        click.echo(f"{traceback.format_exc()}", err=True)
    sys.exit(1)


def _echo_word(config, word: int, no_sdi: bool = False) -> None:
    click.echo(format_word(word, config.output.format))
    if config.output.show_fields:
        _echo_fields(word, no_sdi)


def _echo_fields(word: int, no_sdi: bool) -> None:
    fields = word_fields(word, no_sdi=no_sdi)
    click.echo(f"  Label:  {fields['label']} (wire 0x{fields['wire_label']:02X})")
    click.echo(f"  SDI:    {'-' if fields['sdi'] is None else fields['sdi']}")
    click.echo(f"  Data:   0x{fields['data_bits']:06X}")
    click.echo(f"  SSM:    {fields['ssm']}")
    click.echo(f"  Parity: {fields['parity']}")


@click.group()
@click.version_option(version='1.0.0', prog_name='a429codec')
@click.option('--config', 'config_path', type=click.Path(exists=True), default=None,
              help='YAML file with a config section')
@click.option('--format', 'fmt', type=click.Choice(OUTPUT_FORMATS), default=None,
              help='Word output format')
@click.option('--overflow', type=click.Choice(OVERFLOW_MODES), default=None,
              help='BNR overflow handling')
@click.option('--fields', 'show_fields', is_flag=True,
              help='Print raw word fields after encoding')
@click.option('--verbose', '-v', is_flag=True,
              help='Verbose output')
@click.pass_context
def cli(ctx, config_path, fmt, overflow, show_fields, verbose):
    """a429codec - Encode and decode ARINC 429 data words."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format='%(levelname)s: %(message)s')

    cli_args = {
        'format': fmt,
        'overflow': overflow,
        'show_fields': show_fields,
        'verbose': verbose,
    }
    try:
        config = get_config(cli_args=cli_args,
                            config_path=Path(config_path) if config_path else None)
    except (OSError, ValueError, yaml.YAMLError) as e:
        _fail("Configuration failed", e, verbose)

    logger.debug(config.summary())
    ctx.obj = config


@cli.command('encode-bnr')
@click.option('--range', 'range_', type=float, required=True,
              help='Half full-scale range (e.g. 4096 for +/-4096)')
@click.option('--value', type=float, required=True,
              help='Engineering value to encode')
@click.option('--label', type=LABEL, required=True,
              help='Label in octal (000-377)')
@click.option('--ssm', type=click.IntRange(0, 3), default=None,
              help='SSM value (default: from config)')
@click.option('--sdi', type=click.IntRange(0, 3), default=None,
              help='SDI value (default: 0)')
@click.option('--no-sdi', is_flag=True,
              help='Use the SDI bits as extra data precision')
@click.pass_obj
def encode_bnr(config, range_, value, label, ssm, sdi, no_sdi):
    """Build a BNR word."""
    if no_sdi and sdi is not None:
        raise click.UsageError("--sdi and --no-sdi cannot be used together")
    # An explicit --sdi overrides a no_sdi default from config
    if sdi is None:
        no_sdi = no_sdi or config.codec.no_sdi
        sdi = 0
    if ssm is None:
        ssm = config.codec.default_ssm

    try:
        word = build_bnr_word(range_, value, ssm, NOSDI if no_sdi else sdi,
                              label_to_wire(label), overflow=config.codec.overflow)
    except ValueError as e:
        _fail("Encode failed", e, config.verbose)

    _echo_word(config, word, no_sdi)


@cli.command('decode-bnr')
@click.argument('word', type=WORD)
@click.option('--range', 'range_', type=float, required=True,
              help='Half full-scale range used by the sender')
@click.option('--no-sdi', is_flag=True,
              help='Bits 8-9 carry data, not an SDI')
@click.pass_obj
def decode_bnr(config, word, range_, no_sdi):
    """Split a BNR word into data, SSM and SDI."""
    no_sdi = no_sdi or config.codec.no_sdi
    try:
        data, ssm, sdi = split_bnr_word(word, no_sdi, range_)
    except ValueError as e:
        _fail("Decode failed", e, config.verbose)

    click.echo(f"Label: {format_label(wire_to_label(word & 0xFF))}")
    click.echo(f"Data:  {data:.6f}")
    click.echo(f"SSM:   {ssm}")
    click.echo(f"SDI:   {'-' if no_sdi else sdi}")


@cli.command('encode-float')
@click.option('--value', type=float, default=0.0,
              help='Value to encode')
@click.option('--label', type=LABEL, required=True,
              help='Label in octal (000-377)')
@click.option('--invalid', is_flag=True,
              help='Send the invalid (NaN) marker')
@click.pass_obj
def encode_float(config, value, label, invalid):
    """Build a float word."""
    word = build_float_word(value, not invalid, label_to_wire(label))
    _echo_word(config, word, no_sdi=True)


@cli.command('decode-float')
@click.argument('word', type=WORD)
def decode_float(word):
    """Split a float word into data and validity."""
    data, valid = split_float_word(word)

    click.echo(f"Label: {format_label(wire_to_label(word & 0xFF))}")
    click.echo(f"Data:  {data:.7g}")
    click.echo(f"Valid: {'yes' if valid else 'no'}")


@cli.command()
@click.argument('label', type=LABEL, required=False)
@click.option('--wire', type=click.IntRange(0, 255), default=None,
              help='Look up the label for a wire byte instead')
def label(label, wire):
    """Show the wire byte for an octal label (or the reverse)."""
    if wire is not None:
        click.echo(f"wire 0x{wire:02X} ({wire}) -> label {format_label(wire_to_label(wire))}")
    elif label is not None:
        wire = label_to_wire(label)
        click.echo(f"label {format_label(label)} -> wire 0x{wire:02X} ({wire})")
    else:
        raise click.UsageError("Give a LABEL or --wire")


@cli.command()
@click.argument('ssm1', type=click.IntRange(0, 3))
@click.argument('ssm2', type=click.IntRange(0, 3))
def ssm(ssm1, ssm2):
    """Combine the SSMs of two redundant sources."""
    click.echo(str(combine_ssm(ssm1, ssm2)))


@cli.command()
@click.argument('word', type=WORD)
@click.option('--no-sdi', is_flag=True,
              help='Bits 8-9 carry data, not an SDI')
@click.pass_obj
def inspect(config, word, no_sdi):
    """Show the raw fields of a word."""
    click.echo(format_word(word, config.output.format))
    _echo_fields(word, no_sdi or config.codec.no_sdi)


@cli.command()
@click.argument('icd', type=click.Path(exists=True))
def check_icd(icd):
    """Validate a label ICD file."""
    filepath = Path(icd)
    click.echo(f"Checking ICD: {filepath}")

    result = validate_icd_file(filepath)
    if not result['valid']:
        click.echo(f"\n[ERROR] ICD validation failed:")
        for error in result['errors']:
            click.echo(f"  - {error}")
        sys.exit(1)

    icd_def = result['icd']
    click.echo(f"\n[SUCCESS] ICD file '{filepath.name}' is valid!")
    click.echo(f"\nSummary:")
    click.echo(f"  Name:   {icd_def.name}")
    click.echo(f"  Labels: {len(icd_def.labels)}")

    click.echo(f"\nLabels:")
    for definition in icd_def.labels[:20]:
        if definition.encode == 'bnr':
            sdi = 'no SDI' if definition.no_sdi else f"SDI {definition.sdi}"
            detail = f"BNR +/-{definition.range:g} {sdi}"
        else:
            detail = "FLOAT"
        units = f" [{definition.units}]" if definition.units else ""
        click.echo(f"  - {format_label(definition.label_number)} {definition.name}: {detail}{units}")

    if len(icd_def.labels) > 20:
        click.echo(f"  ... and {len(icd_def.labels) - 20} more")


@cli.command()
@click.argument('icd', type=click.Path(exists=True))
@click.argument('name')
@click.argument('value', type=float)
@click.option('--ssm', type=click.IntRange(0, 3), default=None,
              help='SSM override (BNR labels)')
@click.option('--invalid', is_flag=True,
              help='Send the invalid marker (float labels)')
@click.pass_obj
def encode(config, icd, name, value, ssm, invalid):
    """Encode a value for a label defined in an ICD."""
    try:
        icd_def = load_icd(Path(icd))
        definition = icd_def.get_label_by_name(name)
        if definition is None:
            raise ValueError(f"Label '{name}' not found in ICD '{icd_def.name}'")
        word = definition.encode_value(value, ssm=ssm, valid=not invalid,
                                       overflow=config.codec.overflow)
    except (OSError, ValueError, yaml.YAMLError) as e:
        _fail("Encode failed", e, config.verbose)

    _echo_word(config, word, definition.no_sdi)


@cli.command()
@click.argument('icd', type=click.Path(exists=True))
@click.argument('words', type=WORD, nargs=-1, required=True)
@click.pass_obj
def decode(config, icd, words):
    """Decode words using the labels defined in an ICD."""
    try:
        icd_def = load_icd(Path(icd))
    except (OSError, ValueError, yaml.YAMLError) as e:
        _fail("Decode failed", e, config.verbose)

    unknown = 0
    for word in words:
        result = icd_def.decode_word(word)
        if result is None:
            unknown += 1
            label_text = format_label(wire_to_label(word & 0xFF))
            click.echo(f"{format_word(word, config.output.format)}  label {label_text}: not in ICD")
            continue

        units = f" {result['units']}" if result['units'] else ""
        if 'valid' in result:
            status = 'valid' if result['valid'] else 'INVALID'
            value = f"{result['value']:.7g}"
        else:
            status = f"SSM {result['ssm']}" + ("" if result['sdi'] is None else f" SDI {result['sdi']}")
            value = f"{result['value']:.6f}"
        click.echo(f"{format_word(word, config.output.format)}  {result['label']} "
                   f"{result['name']} = {value}{units} ({status})")

    if unknown:
        sys.exit(1)


@cli.command('filter')
@click.argument('labels', type=LABEL, nargs=-1)
@click.option('--icd', type=click.Path(exists=True), default=None,
              help='Accept every label in this ICD')
@click.pass_obj
def label_filter(config, labels, icd):
    """Print a 32-byte receiver label filter."""
    selected = list(labels)
    if icd:
        try:
            selected.extend(d.label_number for d in load_icd(Path(icd)).labels)
        except (OSError, ValueError, yaml.YAMLError) as e:
            _fail("Filter failed", e, config.verbose)

    if not selected:
        raise click.UsageError("Give at least one LABEL or --icd")

    bitmap = build_label_filter(selected)
    click.echo(bitmap.hex().upper())


@cli.command()
def selftest():
    """Run encode/transmit/receive/decode checks."""
    errors = []
    start_time = time.time()

    click.echo("SELFTEST: BNR regression vector...")
    word = build_bnr_word(4096.0, 2048.0, 1, NOSDI, label_to_wire(0o001))
    if word != 0x28000080:
        errors.append(f"BNR vector: expected 0x28000080, got 0x{word:08X}")
    else:
        click.echo(f"  OK 0x{word:08X}")

    click.echo("SELFTEST: Loopback round trip...")
    transport = LoopbackTransport()
    transport.set_label_filter(1, build_label_filter([0o203]))
    transport.set_receive_control(1, RX_CTRL_LABEL_RECOGNITION)

    transport.write_word(build_bnr_word(131072.0, 35000.0, 3, 2, label_to_wire(0o203)))
    transport.write_word(build_float_word(-12.5, True, label_to_wire(0o211)))

    rx0 = transport.read_all(0)
    rx1 = transport.read_all(1)
    if len(rx0) != 2 or len(rx1) != 1:
        errors.append(f"Loopback: expected 2/1 words, got {len(rx0)}/{len(rx1)}")
    else:
        altitude, _, sdi = split_bnr_word(rx1[0], False, 131072.0)
        temperature, valid = split_float_word(rx0[1])
        if abs(altitude - 35000.0) > 131072.0 / 2 ** 18 or sdi != 2:
            errors.append(f"Loopback BNR: got {altitude} SDI {sdi}")
        elif not valid or abs(temperature + 12.5) > 1e-3:
            errors.append(f"Loopback float: got {temperature} valid={valid}")
        else:
            click.echo(f"  OK altitude={altitude:.1f} temperature={temperature:.4g}")

    elapsed = time.time() - start_time

    if errors:
        click.echo(f"\nERROR SELFTEST FAILED (elapsed: {elapsed:.3f}s):")
        for error in errors:
            click.echo(f"  - {error}")
        sys.exit(1)

    click.echo(f"\nSELFTEST OK (elapsed: {elapsed:.3f}s)")


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
