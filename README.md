# sysprog61

A small systems-programming toolkit for POSIX machines:

- **`sysprog61.io61`**: `Io61File`, a file wrapper over a raw file
  descriptor. It reads and writes one byte per system call, with no
  caching. It has `readc`, `read`, `writec`, `write`, `flush`, `seek`,
  `fileno`, `filesize` and `close`, and it works as a context manager.
  The module also has `fdopen`, `open_check`, `read_bytewise` and
  `write_bytewise`.
- **`sysprog61.variants`**: two other implementations with the same
  interface. `SyscallFile` makes one system call per block read or write.
  `StdioFile` wraps Python's own buffered binary streams.
- **`sysprog61.shellparse`**: a tokenizer (`ShellTokenizer`, `tokenize`)
  and region parsers (`CommandLineParser`, `ConditionalParser`,
  `PipelineParser`, `CommandParser`). The parsers split a shell command
  line into conditionals, pipelines and commands.
- **`sysprog61.shell`**: `sh61`, a tiny shell built on the parser.
- **`sysprog61.socketpipe`**: runs a pipeline of commands joined by
  loopback TCP sockets instead of pipes.

## Installing

```sh
pip install .
```

## File wrappers

```python
import os
from sysprog61.io61 import open_check

with open_check("input.bin", os.O_RDONLY) as src, \
        open_check("copy.bin", os.O_WRONLY | os.O_CREAT | os.O_TRUNC) as dst:
    while block := src.read(4096):
        dst.write(block)
```

The methods behave as follows:

- `readc()` returns one byte as an `int`, or `None` at end of file.
- `read(size)` returns up to `size` bytes. The result is shorter at end of
  file. An error that happens before any byte has been read is raised as
  `OSError`.
- `write(data)` returns the number of bytes written.
- `filesize()` returns `None` when the file is not a regular file, for
  example a pipe.

`open_check(None, flags)` wraps standard input when `flags` open for
reading and standard output otherwise. If a named file cannot be opened,
`open_check` prints an error and exits with status 1.

## Parsing command lines

```python
from sysprog61.shellparse import CommandLineParser, tokenize

for token in tokenize("echo 'hello world' > out.txt && cat out.txt"):
    print(token.type.name, token.value)

line = CommandLineParser("a | b && c ; d")
for conditional in line.conditional_begin():
    for pipeline in conditional.pipeline_begin():
        print(str(pipeline), pipeline.next_op_name())
```

Each `TokenType` is one of the following:

- `NORMAL`: a word, with quotes and backslash escapes removed in `value`.
- `REDIRECT_OP`
- `SEQUENCE` (`;`)
- `BACKGROUND` (`&`)
- `PIPE` (`|`)
- `AND` (`&&`)
- `OR` (`||`)
- `LPAREN`
- `RPAREN`
- `OTHER`
- `EOL`

A `#` begins a comment that runs to the end of the line.

## Shell

```sh
sh61              # interactive, with a prompt
sh61 -q script.sh # run commands from a file without prompting
```

The shell supports the following:

- Command lists separated by `;`.
- Background conditionals ending in `&`.
- `&&` and `||` chains.
- `|` pipelines.
- Redirections `<`, `>`, `>>` and `N>` for standard input, output and
  error.

`run_line` runs one line, given as text or as a `CommandLineParser`. It
returns whether the last foreground part succeeded.

## Socket pipelines

```sh
socketpipe cat input.txt "|" wc -c
socketpipe -P 4096 cat input.txt "|" wc -c
```

`-P` sets the socket send and receive buffer sizes. The exit status is
that of the last command.

## What this package does not do

The file wrappers are a library only. The package has no command-line
programs that copy files with them. It also has no shared option parser
for such programs and no randomness checker.

## Running the tests

```sh
pip install ".[test]"
pytest
```