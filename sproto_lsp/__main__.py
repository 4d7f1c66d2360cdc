from sproto_lsp.server import main

main()
