# mediasync

mediasync shares media files from a host machine with any number of clients
on the network. The host loads videos, audio and images. Clients connect,
list what is available and request a file. The requested file is sent to the
client, and the client saves it and opens it with the system's default
application. The host opens the same file too. Every other joined client gets
a play command for that file.

Messages travel over TCP as one JSON document per line.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

### Media server

```
mediasync server 8080 /path/to/media
```

The path can be a directory or a single file. Files with these extensions are
loaded:

- video: mp4, avi, mkv, mov, webm
- audio: mp3, wav, flac, ogg, aac
- image: jpg, jpeg, png, gif, bmp, webp

Files with other extensions are skipped. The server listens on all
interfaces. When a client requests a file, the server writes it to
`host_temp_<filename>` in the current directory and opens it. The opener is
`xdg-open` on Linux, `open` on macOS and `start` on Windows. Press Ctrl+C to
stop the server.

### Media client

```
mediasync client 127.0.0.1:8080 client1
```

The client joins the server and asks for the media list. It then requests the
first file in the list. It saves the data as `client_temp_<client id>_<filename>`
in the current directory and opens it. Play, pause and error messages from the
server are reported on the console.

### Web control panel

```
mediasync web        # port 3000
mediasync web 8000
```

The panel serves `/`, `/style.css` and `/script.js` from `index.html`,
`style.css` and `script.js` in the current directory. If a file is missing, it
serves a short placeholder instead. Commands go to it through `POST /api`
with a JSON body of the form `{"command": "...", "params": {...}}`. It answers
with `{"success": ..., "error": ..., "data": ...}`.

| command | params | effect |
|---|---|---|
| `start-server` | `port` (default 8080), `directory` | loads media and starts a media server in the background |
| `stop-server` | | shuts the media server down |
| `get-connected-clients` | | lists joined clients (`id`, `address`, `connected_time`) |
| `get-logs` | | returns the last 100 log entries |
| `disconnect-specific-client` | `clientId` | closes one client's connection |
| `connect-client` | `serverAddress`, `clientId` | connects a media client and returns the server's file list |
| `disconnect-client` | | closes the media client |
| `request-media` | `filename` | returns a placeholder payload (see below) |
| `stream-media` | `filename` | checks the filename and reports success |

Every response carries `Access-Control-Allow-Origin: *`.

The exit status of `mediasync` is 1 when a port is invalid or a network or
file error stops it. Otherwise it is 0.

## Desktop panel

```
mediasync-gui
```

This opens a Tk window with a Server tab and a Client tab, so Python's
`tkinter` must be available. The Server tab takes a port and a media
directory and has Start and Stop buttons. The Client tab takes a server
address and a client ID and has Connect and Disconnect buttons. It lists the
server's files, and the Request button fetches the selected one. Both tabs
share a status log. The state behind the window is `mediasync.gui.AppState`,
which can be driven without a window.

## Library use

```python
import threading

from mediasync.server import MediaServer
from mediasync.client import MediaClient

server = MediaServer()
server.set_status_callback(print)
server.load_media_path("/path/to/media")
server.listen(8080)
threading.Thread(target=server.serve_forever, daemon=True).start()

client = MediaClient("127.0.0.1:8080", "client1", auto_request_first=False)
client.set_files_callback(lambda files: print("available:", files))
client.connect_in_background()
client.request_media("movie.mp4")

print(server.get_connected_clients())
server.play_media("movie.mp4")     # sends a play command to every joined client
server.pause_media()
client.close()
server.shutdown()
```

`MediaServer.start_server(port)` listens and then serves in the calling thread
until `shutdown()` is called. `MediaServer(play_on_host=False)` and
`MediaClient(..., play_media=False)` keep received files from being written to
disk and opened.

`mediasync.protocol` holds the message types together with `encode_message`
and `decode_message`. `mediasync.media` holds `MediaFile`,
`media_type_from_filename`, `load_media_file` and the helpers that open files
with the default application.

## What it does not do

- Play and pause commands are not carried out. A client only reports them,
  and nothing synchronises playback between machines.
- In the web panel, `request-media` does not fetch the file from a server. It
  returns 1000 zero bytes, base64-encoded, with the media type guessed from
  the filename. `stream-media` sends nothing to clients.
- The package ships no `index.html`, `style.css` or `script.js` for the web
  panel. Provide your own in the working directory.
- There is no authentication and no encryption. Whole files are sent in one
  message and held in memory.