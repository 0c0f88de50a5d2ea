import sys
from prp_manager.prp_manager import main as cli_main


def main():
    if len(sys.argv) > 1 and sys.argv[1] == "mcp":
        # Remove "mcp" from argv so the server's own parser doesn't choke on it
        sys.argv.pop(1)
        from prp_manager.prp_manager_mcp import prp_manager_mcp

        prp_manager_mcp()
    else:
        cli_main()


if __name__ == "__main__":
    main()
