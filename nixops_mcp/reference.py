"""Static reference texts served by the help tools, resources and server instructions."""

SERVER_INSTRUCTIONS = """\
Nix and NixOS operations server. Tools shell out to the local Nix toolchain and companion CLIs.

=== NIX PACKAGES ===
- search_packages, get_package_info, explain_package - find and describe nixpkgs packages
- find_command, nix_locate - find which package provides a command or file (nix-index)
- comma - run any program from nixpkgs without installing it

=== BUILD & DERIVATIONS ===
- nix_build (supports dry-run), get_build_log, nixos_build
- why_depends, show_derivation, get_closure_size, diff_derivations

=== DEVELOPMENT ===
- search_options, nix_eval, run_in_shell, nix_log, nix_run, nix_develop

=== FLAKES ===
- flake_metadata, flake_show, prefetch_url

=== CODE QUALITY ===
- format_nix, validate_nix, lint_nix, nix_fmt

=== REFERENCE ===
- nix_command_help, ecosystem_tools

=== CLAN ===
Machine management: clan_machine_create, clan_machine_list, clan_machine_update,
clan_machine_delete, clan_machine_install, clan_machine_build
Backup operations: clan_backup_create, clan_backup_list, clan_backup_restore
Project & infrastructure: clan_flake_create, clan_secrets_list, clan_vm_create,
clan_analyze_secrets, clan_analyze_vars, clan_analyze_tags, clan_analyze_roster, clan_help

=== PROCESSES ===
- pexpect_start, pexpect_send, pexpect_close - drive interactive programs
- pueue_add, pueue_status, pueue_log, pueue_wait, pueue_remove, pueue_clean,
  pueue_pause, pueue_start - background task queue

=== PRE-COMMIT ===
- check_pre_commit_status, setup_pre_commit, pre_commit_run

Destructive tools (clan_machine_update, clan_machine_delete, clan_machine_install,
clan_backup_restore) do nothing unless called with confirm=true.

TIP: 'nix-shell -p <package>' or 'nix shell nixpkgs#<package>' gives any nixpkgs package in a
temporary shell. Use run_in_shell to execute commands in such an environment.

For Clan: every tool takes a 'flake' argument naming the Clan directory (defaults to '.').
"""

COMMON_COMMANDS = """\
Common Nix Commands Reference

QUICKEST WAY TO GET ANY PACKAGE:
- nix-shell -p <package>         Get ANY nixpkgs package instantly!
- nix-shell -p <pkg1> <pkg2>     Multiple packages at once
- nix-shell -p gcc --run "gcc --version"  Run command and exit

Package Management:
- nix search nixpkgs <query>     Search for packages
- nix shell nixpkgs#<pkg>        Temporary shell (flakes way)
- nix run nixpkgs#<pkg>          Run package directly

Development:
- nix develop                    Enter development shell from flake
- nix develop -c <command>       Run command in dev environment
- nix develop --impure           Allow impure evaluation

Building:
- nix build                      Build default package
- nix build .#<package>          Build specific package
- nix build --json               Output build metadata

Flakes:
- nix flake init                 Create new flake.nix
- nix flake update               Update flake.lock
- nix flake check                Validate flake
- nix flake show                 Show flake structure

Utilities:
- nix eval --expr "<expr>"       Evaluate Nix expression
- nix fmt                        Format Nix files
- nixpkgs-fmt <file>             Format specific file
"""

FLAKE_TEMPLATE = """\
{
  description = "A basic Nix flake";

  inputs = {
    nixpkgs.url = "github:NixOS/nixpkgs/nixpkgs-unstable";
    flake-utils.url = "github:numtide/flake-utils";
  };

  outputs = { self, nixpkgs, flake-utils, ... }:
    flake-utils.lib.eachDefaultSystem (system:
      let
        pkgs = nixpkgs.legacyPackages.${system};
      in
      {
        packages.default = pkgs.stdenv.mkDerivation {
          name = "my-package";
          src = ./.;
          buildInputs = [ ];
        };

        devShells.default = pkgs.mkShell {
          packages = with pkgs; [
            # Add your development tools here
          ];

          shellHook = ''
            echo "Development environment ready!"
          '';
        };
      }
    );
}
"""

NIX_COMMAND_HELP = {
    "develop": """\
nix develop - Enter a development shell

Usage:
  nix develop              # Enter devShell from flake.nix
  nix develop .#myShell    # Enter specific shell
  nix develop -c <cmd>     # Run command in dev shell
  nix develop --impure     # Allow impure evaluation

Example flake.nix devShell:
  devShells.default = pkgs.mkShell {
    packages = [ pkgs.rustc pkgs.cargo ];
    shellHook = ''
      echo "Welcome to the dev shell!"
    '';
  };
""",
    "build": """\
nix build - Build a package

Usage:
  nix build                # Build default package from flake
  nix build .#package      # Build specific package
  nix build nixpkgs#hello  # Build from nixpkgs
  nix build --json         # Output JSON metadata

Result: Creates 'result' symlink to build output
""",
    "flake": """\
nix flake - Manage Nix flakes

Common commands:
  nix flake init           # Create new flake.nix
  nix flake update         # Update flake.lock
  nix flake check          # Check flake outputs
  nix flake show           # Show flake outputs
  nix flake metadata       # Show flake metadata

Templates:
  nix flake init -t templates#rust      # Rust template
  nix flake init -t templates#python    # Python template
""",
    "shell": """\
Getting Packages in a Shell

Modern way (with flakes):
  nix shell nixpkgs#hello             # Add hello to PATH
  nix shell nixpkgs#hello nixpkgs#git # Multiple packages
  nix shell nixpkgs#python3 -c python # Run command in shell

Classic way (nix-shell -p):
  nix-shell -p hello                  # Quick temporary shell with package
  nix-shell -p python3 nodejs         # Multiple packages
  nix-shell -p gcc --run "gcc --version"  # Run command and exit

The -p flag is the FASTEST way to try any package from nixpkgs!

Note: Prefer 'nix develop' for project development environments with flake.nix
""",
    "run": """\
nix run - Run a package

Usage:
  nix run nixpkgs#hello        # Run hello from nixpkgs
  nix run .#myapp              # Run app from local flake
  nix run github:user/repo     # Run from GitHub
""",
}
NIX_COMMAND_HELP["nix-shell"] = NIX_COMMAND_HELP["shell"]

NIX_COMMAND_OVERVIEW = """\
Common Nix Commands:

Quick Package Access (MOST USEFUL):
  nix-shell -p <pkg>        - Instant shell with ANY nixpkgs package
  nix-shell -p pkg1 pkg2    - Multiple packages at once
  nix shell nixpkgs#<pkg>   - Flakes equivalent

Development:
  nix develop               - Enter development shell from flake.nix
  nix develop -c <cmd>      - Run command in dev environment

Building:
  nix build                 - Build package (creates 'result' symlink)
  nix build .#pkg           - Build specific package

Running:
  nix run nixpkgs#tool      - Run a package directly

Flakes:
  nix flake init            - Initialize new flake
  nix flake update          - Update dependencies
  nix flake check           - Validate flake outputs
  nix flake show            - Display flake structure

Searching:
  nix search nixpkgs query  - Search for packages

Other:
  nix eval --expr "1 + 1"   - Evaluate Nix expression
  nix fmt                   - Format Nix files

Use 'nix_command_help' with specific command for details.
Available: develop, build, flake, shell, nix-shell, run

Ecosystem Tools:
  Use 'ecosystem_tools' to learn about comma, noogle.dev, alejandra,
  disko, nixos-anywhere and more.
"""

ECOSYSTEM_TOOLS = {
    "comma": """\
comma - Run programs without installing them
Repository: https://github.com/nix-community/comma
Install: nix-env -iA nixpkgs.comma

Usage:
  , cowsay hello    # Runs cowsay without installing it
  , python3 -c "print('hi')"  # Run Python scripts

Comma uses nix-index to locate and run any program from nixpkgs instantly.""",
    "disko": """\
disko - Declarative disk partitioning and formatting
Repository: https://github.com/nix-community/disko

Declaratively define disk layouts in Nix, including partitions, filesystems,
LUKS encryption, LVM, RAID, and more. Pairs with nixos-anywhere for remote installs.""",
    "nixos-anywhere": """\
nixos-anywhere - Install NixOS remotely via SSH
Repository: https://github.com/nix-community/nixos-anywhere

Install NixOS on a remote machine from any Linux system via SSH.
Works great with disko for declarative disk setup.

Usage:
  nixos-anywhere --flake '.#my-server' root@192.168.1.10""",
    "terranix": """\
terranix - NixOS-like Terraform configurations
Repository: https://github.com/terranix/terranix

Write Terraform configurations in Nix instead of HCL and reuse Nix's
module system, functions and imports for infrastructure code.""",
    "noogle": """\
noogle.dev - Search Nix functions and built-ins
Website: https://noogle.dev/

Interactive search for Nix language built-ins and nixpkgs lib functions.
Search examples: "map", "filter", "mkDerivation".""",
    "microvm": """\
microvm.nix - Lightweight NixOS VMs
Repository: https://github.com/microvm-nix/microvm.nix

Ultra-lightweight NixOS VMs using cloud-hypervisor, firecracker, or qemu.
They boot in milliseconds and can share /nix/store with the host.""",
    "alejandra": """\
alejandra - Opinionated Nix code formatter
Repository: https://github.com/kamadorueda/alejandra
Install: nix-shell -p alejandra

Usage:
  alejandra .           # Format all Nix files
  alejandra file.nix    # Format specific file""",
    "deadnix": """\
deadnix - Find and remove dead Nix code
Repository: https://github.com/astro/deadnix
Install: nix-shell -p deadnix

Usage:
  deadnix .                    # Find dead code
  deadnix --edit .             # Remove dead code automatically

Finds unused function arguments, let bindings and imports.""",
    "nix-init": """\
nix-init - Generate Nix packages from URLs
Repository: https://github.com/nix-community/nix-init
Install: nix-shell -p nix-init

Usage:
  nix-init              # Interactive package generation
  nix-init <url>        # Generate from URL

Creates package definitions for Rust crates, Python packages, Go modules and more.""",
    "statix": """\
statix - Lints and suggestions for Nix
Repository: https://github.com/oppiliappan/statix
Install: nix-shell -p statix

Usage:
  statix check .        # Check for issues
  statix fix .          # Auto-fix issues""",
    "nvd": """\
nvd - Nix version diff tool
Repository: https://git.sr.ht/~khumba/nvd
Install: nix-shell -p nvd

Usage:
  nvd diff /nix/var/nix/profiles/system-{42,43}-link

Shows added and removed packages plus version changes between NixOS generations.""",
    "nixpkgs-review": """\
nixpkgs-review - Review nixpkgs pull requests
Repository: https://github.com/Mic92/nixpkgs-review
Install: nix-shell -p nixpkgs-review

Usage:
  nixpkgs-review pr 12345     # Review PR #12345
  nixpkgs-review rev HEAD     # Review local changes""",
    "crane": """\
crane - Nix library for building Cargo projects
Repository: https://github.com/ipetkov/crane
Install: Add to flake inputs

Example flake.nix:
  inputs.crane.url = "github:ipetkov/crane";
  craneLib = crane.mkLib pkgs;
  my-crate = craneLib.buildPackage {
    src = ./.;
  };""",
    "nil": """\
nil - Nix Language Server (LSP)
Repository: https://github.com/oxalica/nil
Install: nix-shell -p nil

Provides completion, go to definition, find references and diagnostics.""",
    "treefmt-nix": """\
treefmt-nix - Multi-language formatter manager
Repository: https://github.com/numtide/treefmt-nix
Install: Add to flake inputs

Example flake.nix:
  treefmt.config = {
    projectRootFile = "flake.nix";
    programs = {
      nixpkgs-fmt.enable = true;
      rustfmt.enable = true;
    };
  };""",
    "git-hooks.nix": """\
git-hooks.nix - Pre-commit hooks for Nix projects
Repository: https://github.com/cachix/git-hooks.nix
Install: Add to flake inputs

Example flake.nix:
  pre-commit-check = pre-commit-hooks.lib.${system}.run {
    src = ./.;
    hooks = {
      nixpkgs-fmt.enable = true;
      statix.enable = true;
      deadnix.enable = true;
    };
  };""",
}

ECOSYSTEM_TOOL_ALIASES = {
    ",": "comma",
    "noogle.dev": "noogle",
    "microvm.nix": "microvm",
    "treefmt": "treefmt-nix",
    "pre-commit-hooks": "git-hooks.nix",
    "pre-commit-hooks.nix": "git-hooks.nix",
}

ECOSYSTEM_OVERVIEW = """\
Useful Nix Ecosystem Tools:

Quick Access & Discovery:
- comma (,)         - Run any program without installing (nix-shell -p comma)
- noogle.dev        - Search Nix functions and documentation online

Code Quality & Formatting:
- alejandra         - Opinionated Nix formatter (nix-shell -p alejandra)
- deadnix           - Find dead/unused code (nix-shell -p deadnix)
- statix            - Linter with auto-fixes (nix-shell -p statix)
- treefmt-nix       - Multi-language formatter manager
- git-hooks.nix     - Declarative pre-commit hooks

Development Tools:
- nil               - Nix Language Server / LSP (nix-shell -p nil)
- nixpkgs-review    - Review nixpkgs PRs (nix-shell -p nixpkgs-review)

Package Development:
- nix-init          - Generate Nix packages from URLs (nix-shell -p nix-init)
- crane             - Efficient Cargo/Rust builds

Infrastructure & Deployment:
- disko             - Declarative disk partitioning
- nixos-anywhere    - Remote NixOS installation via SSH
- terranix          - Write Terraform in Nix
- microvm.nix       - Lightweight NixOS VMs

System Management:
- nvd               - Diff NixOS generations (nix-shell -p nvd)

Use 'ecosystem_tools' with a specific tool name for detailed information.
Example: ecosystem_tools(tool="comma")"""

CLAN_HELP = """\
Clan - Peer-to-Peer NixOS Management Framework

Clan is a framework built on NixOS that enables declarative, collaborative management
of distributed systems. It provides tools for managing machines, backups, secrets, and more.

KEY CONCEPTS:

1. Clan Flake
   A Git repository containing your infrastructure as code: machine configurations,
   shared services and modules, secrets and variables, network topology.

2. Machines
   Individual systems managed by Clan, each with its hardware configuration,
   NixOS configuration, service definitions and access to shared secrets.

3. Services
   Modular components that add functionality: networking, backups, monitoring.

AVAILABLE TOOLS:

Machine Management:
- clan_machine_create - Create new machine configurations
- clan_machine_list - List all machines in flake
- clan_machine_update - Update/deploy machine configurations (requires confirm=true)
- clan_machine_delete - Remove machine configurations (requires confirm=true)
- clan_machine_install - Install NixOS to a remote host (destructive!)
- clan_machine_build - Build machine configuration locally for testing

Backup Operations:
- clan_backup_create - Create backups for machines
- clan_backup_list - List available backups
- clan_backup_restore - Restore from backup (requires confirm=true)

Flake & Project:
- clan_flake_create - Initialize new Clan project
- clan_secrets_list - View configured secrets
- clan_vm_create - Create VMs for testing configurations
- nixos_build - Build NixOS configurations from flakes

Analysis Tools:
- clan_analyze_secrets - Analyze secret (ACL) ownership across machines
- clan_analyze_vars - Analyze vars ownership across machines
- clan_analyze_tags - Analyze machine tags
- clan_analyze_roster - Analyze user roster configurations

COMMON WORKFLOWS:

1. Creating a New Clan Project:
   clan_flake_create(directory="my-infrastructure")

2. Adding a Machine:
   clan_machine_create(name="webserver", target_host="192.168.1.10")

3. Deploying to Production:
   clan_machine_install(machine="webserver", target_host="192.168.1.10", confirm=true)

4. Regular Updates:
   clan_machine_update(machines=["webserver"], confirm=true)

5. Backup & Restore:
   clan_backup_create(machine="webserver")
   clan_backup_list(machine="webserver")
   clan_backup_restore(machine="webserver", provider="borgbackup", name="2024-12-01", confirm=true)

DOCUMENTATION:
- Main docs: https://docs.clan.lol
- Repository: https://git.clan.lol/clan/clan-core
- Option search: https://docs.clan.lol/option-search/
"""
