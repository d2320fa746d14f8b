from blinker import NamedSignal


on_assembly_indexed = NamedSignal(f"{__package__}.on_assembly_indexed")
on_dynamic_lookup = NamedSignal(f"{__package__}.on_dynamic_lookup")
on_container_create = NamedSignal(f"{__package__}.on_container_create")
